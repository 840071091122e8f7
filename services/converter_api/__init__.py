"""SILK Audio Converter - Converter API service.

FastAPI service exposing the conversion pipeline over HTTP.
"""

__all__: list[str] = []
