"""Tool lookup and external process execution."""

import asyncio
import re
import shlex
import shutil
from pathlib import Path
from typing import Optional, Sequence, TypeAlias

from pynapi.errors import ProcessError, ToolNotFoundError

CMAKE_VERSION_PATTERN = re.compile(r"(\d+\.\d+\.\d+)")

Command: TypeAlias = Sequence[str] | str


def is_tool_available(tool: str) -> bool:
    return shutil.which(tool) is not None


def require_tool(tool: str) -> Path:
    """Return the resolved path of ``tool`` or raise ToolNotFoundError."""
    resolved = shutil.which(tool)
    if resolved is None:
        raise ToolNotFoundError(tool)
    return Path(resolved)


def _display(cmd: Command) -> str:
    if isinstance(cmd, str):
        return cmd
    return shlex.join(str(part) for part in cmd)


async def _spawn(
    cmd: Command, cwd: Optional[Path], shell: bool, **kwargs
) -> asyncio.subprocess.Process:
    if shell:
        return await asyncio.create_subprocess_shell(
            _display(cmd), cwd=cwd, **kwargs
        )
    if isinstance(cmd, str):
        raise TypeError("a string command requires shell=True")
    return await asyncio.create_subprocess_exec(*cmd, cwd=cwd, **kwargs)


async def run_process(
    cmd: Command,
    cwd: Optional[Path] = None,
    *,
    shell: bool = False,
    capture: bool = False,
    echo: bool = True,
) -> str:
    """Run ``cmd`` to completion.

    stderr is always collected so a failing tool can be diagnosed; stdout is
    passed through unless ``capture`` is set, in which case it is returned.
    Non-zero exit raises ProcessError carrying the collected stderr, or a
    generic "exited with code N" message when the tool printed nothing.
    """
    if echo:
        print("+", _display(cmd))
    try:
        process = await _spawn(
            cmd,
            cwd,
            shell,
            stdout=asyncio.subprocess.PIPE if capture else None,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ProcessError(f"failed to start {_display(cmd)}: {exc}") from exc
    stdout, stderr = await process.communicate()
    errors = stderr.decode(errors="replace").strip() if stderr else ""
    if process.returncode != 0:
        if errors:
            raise ProcessError(errors, process.returncode)
        raise ProcessError(
            f"{_display(cmd)} exited with code {process.returncode}",
            process.returncode,
        )
    return stdout.decode(errors="replace") if capture and stdout else ""


async def run_steps(steps: Sequence[Sequence[str]], cwd: Optional[Path] = None) -> None:
    """Run each command in order, stopping at the first failure."""
    for step in steps:
        await run_process(step, cwd)


async def relay_process(cmd: Sequence[str], cwd: Optional[Path] = None) -> int:
    """Run ``cmd`` with its output streams attached to ours; return its exit code."""
    print("+", _display(cmd))
    process = await asyncio.create_subprocess_exec(*cmd, cwd=cwd)
    return await process.wait()


def parse_cmake_version(output: str) -> Optional[str]:
    match = CMAKE_VERSION_PATTERN.search(output)
    return match.group(1) if match else None


async def cmake_version(cmake: str = "cmake") -> str:
    """Return the first x.y.z version token printed by ``cmake --version``."""
    output = await run_process([cmake, "--version"], capture=True, echo=False)
    version = parse_cmake_version(output)
    if version is None:
        raise ProcessError(f"could not determine the {cmake} version")
    return version
