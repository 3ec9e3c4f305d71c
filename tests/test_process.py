import asyncio
import sys

import pytest

from pynapi import process
from pynapi.errors import ProcessError, ToolNotFoundError


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def test_is_tool_available():
    assert process.is_tool_available(sys.executable)
    assert not process.is_tool_available("pynapi-definitely-missing-tool")


def test_require_tool_reports_missing_tool():
    with pytest.raises(ToolNotFoundError, match="could not find 'nope-tool' in the path"):
        process.require_tool("nope-tool")


def test_run_process_captures_stdout():
    output = asyncio.run(process.run_process(_python("print('hello')"), capture=True))

    assert output.strip() == "hello"


def test_run_process_raises_with_stderr():
    cmd = _python("import sys; sys.stderr.write('boom'); sys.exit(3)")

    with pytest.raises(ProcessError) as excinfo:
        asyncio.run(process.run_process(cmd))

    assert str(excinfo.value) == "boom"
    assert excinfo.value.returncode == 3


def test_run_process_raises_generic_message_without_stderr():
    with pytest.raises(ProcessError, match="exited with code 4"):
        asyncio.run(process.run_process(_python("import sys; sys.exit(4)")))


def test_run_process_missing_executable():
    with pytest.raises(ProcessError, match="failed to start"):
        asyncio.run(process.run_process(["pynapi-definitely-missing-tool"]))


def test_run_process_through_shell():
    cmd = f'"{sys.executable}" -c "print(42)"'

    output = asyncio.run(process.run_process(cmd, shell=True, capture=True))

    assert output.strip() == "42"


def test_run_process_rejects_string_without_shell():
    with pytest.raises(TypeError):
        asyncio.run(process.run_process("echo hi"))


def test_run_steps_stops_at_first_failure(tmp_path):
    steps = [
        _python("open('first', 'w').close()"),
        _python("import sys; sys.exit(1)"),
        _python("open('third', 'w').close()"),
    ]

    with pytest.raises(ProcessError):
        asyncio.run(process.run_steps(steps, cwd=tmp_path))

    assert (tmp_path / "first").exists()
    assert not (tmp_path / "third").exists()


def test_relay_process_returns_exit_code():
    assert asyncio.run(process.relay_process(_python("import sys; sys.exit(5)"))) == 5


def test_parse_cmake_version():
    output = "cmake version 3.28.1\n\nCMake suite maintained and supported by Kitware.\n"

    assert process.parse_cmake_version(output) == "3.28.1"
    assert process.parse_cmake_version("no version here") is None


def test_cmake_version_uses_first_match(monkeypatch):
    calls = []

    async def fake_run(cmd, cwd=None, **kwargs):
        calls.append((cmd, kwargs))
        return "cmake version 3.30.2-dirty\nsomething 1.2.3\n"

    monkeypatch.setattr(process, "run_process", fake_run)

    assert asyncio.run(process.cmake_version()) == "3.30.2"
    assert calls[0][0] == ["cmake", "--version"]
    assert calls[0][1]["capture"] is True


def test_cmake_version_without_version_token(monkeypatch):
    async def fake_run(cmd, cwd=None, **kwargs):
        return "garbage"

    monkeypatch.setattr(process, "run_process", fake_run)

    with pytest.raises(ProcessError, match="could not determine"):
        asyncio.run(process.cmake_version())
