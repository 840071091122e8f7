"""SILK Audio Converter - Core application modules.

Provides:
- Input resolution (upload bytes, local path, remote URL)
- External process runner for ffmpeg and the SILK encoder
- The two-stage conversion pipeline
- Retention sweeps for staged files, outputs and logs
"""

__version__ = "0.1.0"
