"""Shared pytest fixtures for SILK Audio Converter tests.

External tools are never executed here: the pipeline receives a FakeRunner
(tests/fakes.py) that writes the files ffmpeg and the encoder would have
produced.
"""

from __future__ import annotations

import wave
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from services.converter_api.main import create_app
from tests.fakes import FAKE_TOOLS, FakeRunner


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary directory."""
    static_dir = tmp_path / "static"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<html><body>upload page</body></html>")
    base = Settings(color=False, log_level="DEBUG", static_dir=static_dir)
    return base.with_base_dir(tmp_path / "data")


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def app_factory(settings):
    """Build an app with fake tools; caller picks the runner."""

    def _make(runner=None, **overrides):
        app_settings = settings
        if overrides:
            app_settings = replace(settings, **overrides)
        return create_app(app_settings, tools=FAKE_TOOLS, runner=runner or FakeRunner())

    return _make


@pytest.fixture
def client(app_factory, fake_runner):
    """TestClient running the full lifespan with a succeeding FakeRunner."""
    app = app_factory(fake_runner)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_audio_file(tmp_path):
    """A minimal valid WAV file (1 second of silence, mono, 24 kHz)."""
    path = tmp_path / "sample.wav"
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(24000)
        wf.writeframes(b"\x00" * 24000 * 2)
    return path
