"""Tests for the external process runner (app/process_runner.py).

Uses the running Python interpreter as the external program.
"""

from __future__ import annotations

import logging
import sys
import time

from app.process_runner import ProcessResult, run_process


def _python(code: str) -> list[str]:
    return ["-c", code]


class TestRunProcess:
    """Tests for run_process outcome classification."""

    def test_success_exit_zero(self):
        """Exit code 0 is reported as ok."""
        result = run_process(sys.executable, _python("print('hello')"), stage="probe")

        assert result.ok is True
        assert result.returncode == 0
        assert result.stage == "probe"

    def test_nonzero_exit_is_failure(self):
        """Non-zero exit is a failure carrying the code and stderr tail."""
        code = "import sys; sys.stderr.write('bad input\\n'); sys.exit(3)"
        result = run_process(sys.executable, _python(code), stage="transcode")

        assert result.ok is False
        assert result.returncode == 3
        assert result.stderr_tail == ["bad input"]
        assert "transcode failed" in result.describe()
        assert "bad input" in result.describe()

    def test_missing_executable(self, tmp_path):
        """A program that cannot start is a failure without return code."""
        missing = tmp_path / "no-such-tool"
        result = run_process(missing, ["-i", "x"], stage="encode")

        assert result.ok is False
        assert result.returncode is None
        assert "failed to start" in result.message

    def test_arguments_passed_in_order(self, tmp_path):
        """Arguments reach the program unchanged and in order."""
        out = tmp_path / "args.txt"
        code = "import sys; open(sys.argv[1], 'w').write('|'.join(sys.argv[2:]))"
        result = run_process(sys.executable, ["-c", code, out, "a b", "-tencent"], stage="probe")

        assert result.ok
        assert out.read_text() == "a b|-tencent"

    def test_stderr_tail_is_bounded(self):
        """Only the last lines of stderr are kept."""
        code = "import sys\nfor i in range(100): sys.stderr.write(f'line {i}\\n')\nsys.exit(1)"
        result = run_process(sys.executable, _python(code), stage="probe")

        assert len(result.stderr_tail) == 20
        assert result.stderr_tail[-1] == "line 99"

    def test_large_output_does_not_block(self):
        """Output larger than a pipe buffer on both streams is drained."""
        code = (
            "import sys\n"
            "for i in range(20000):\n"
            "    sys.stdout.write('o' * 50 + '\\n')\n"
            "    sys.stderr.write('e' * 50 + '\\n')\n"
        )
        started = time.monotonic()
        result = run_process(sys.executable, _python(code), stage="probe", timeout=60)

        assert result.ok
        assert time.monotonic() - started < 60

    def test_timeout_kills_process(self):
        """A process exceeding the timeout is killed and reported."""
        started = time.monotonic()
        result = run_process(
            sys.executable,
            _python("import time; time.sleep(30)"),
            stage="encode",
            timeout=0.5,
        )

        assert result.ok is False
        assert "timed out" in result.message
        assert time.monotonic() - started < 20


class TestOutputLogging:
    """Tests for line-by-line log capture."""

    def test_lines_logged_at_debug(self, caplog):
        """Both streams are logged line by line with the stage label."""
        caplog.set_level(logging.DEBUG, logger="app.process_runner")
        code = "import sys; print('from stdout'); sys.stderr.write('from stderr\\n')"

        run_process(sys.executable, _python(code), stage="transcode")

        messages = [r.getMessage() for r in caplog.records]
        assert "[transcode stdout] from stdout" in messages
        assert "[transcode stderr] from stderr" in messages

    def test_blank_lines_skipped(self, caplog):
        caplog.set_level(logging.DEBUG, logger="app.process_runner")
        run_process(sys.executable, _python("print(); print('  '); print('x')"), stage="probe")

        stdout_lines = [r.getMessage() for r in caplog.records if "[probe stdout]" in r.getMessage()]
        assert stdout_lines == ["[probe stdout] x"]


class TestProcessResult:
    def test_describe_uses_exit_code_without_message(self):
        result = ProcessResult(ok=False, stage="encode", returncode=2)
        assert result.describe() == "encode failed: exit code 2"

    def test_describe_prefers_message(self):
        result = ProcessResult(ok=False, stage="encode", message="timed out after 1 seconds")
        assert result.describe() == "encode failed: timed out after 1 seconds"
