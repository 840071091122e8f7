"""SILK Audio Converter - Service context.

Everything a request handler needs, built once at startup and stored on
app.state. Handlers receive it through a FastAPI dependency instead of
reaching for module globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.config import Settings
from app.executables import ToolPaths, resolve_tool_paths
from app.pipeline import ConversionPipeline, Runner
from app.process_runner import run_process


@dataclass
class ServiceContext:
    settings: Settings
    tools: ToolPaths
    pipeline: ConversionPipeline


def build_context(
    settings: Settings,
    tools: ToolPaths | None = None,
    runner: Runner = run_process,
) -> ServiceContext:
    """Resolve tools (unless given) and wire the pipeline."""
    tools = tools or resolve_tool_paths()
    return ServiceContext(
        settings=settings,
        tools=tools,
        pipeline=ConversionPipeline(settings, tools, runner=runner),
    )
