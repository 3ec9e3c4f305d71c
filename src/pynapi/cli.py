#!/usr/bin/env python3
"""Scaffold, build, test and clean native Node.js addons with CMake and Ninja."""

import asyncio
import importlib.metadata
import re
import sys
from pathlib import Path
from typing import Awaitable, Optional, Sequence

from pynapi import settings
from pynapi.errors import PynapiError, ToolNotFoundError, UsageError
from pynapi.fetch import install_dependencies
from pynapi.process import (
    cmake_version,
    is_tool_available,
    relay_process,
    require_tool,
    run_process,
    run_steps,
)
from pynapi.runtime import RuntimeRelease, find_headers_dirs, lib_file, probe_runtime
from pynapi.templates import (
    CMAKE_FILE,
    GIT_IGNORE_FILE,
    MANIFEST_FILE,
    SOURCE_FILE,
    render_cmakelists,
    render_gitignore,
    render_manifest,
    render_source,
)
from pynapi.util import (
    EXIT_FAILURE,
    error,
    failure_handler,
    info,
    remove_path,
    write_text_file,
)

DEFAULT_VERSION = "0.1.0"
CMAKE_GENERATOR = "Ninja"
SMOKE_TEST_SCRIPT = "require('./')"
PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")
NEW_USAGE = "usage: pynapi new <name>"

COMMAND_ALIASES = {
    "create": "new",
    "n": "new",
    "install": "init",
    "i": "init",
    "b": "build",
    "t": "test",
    "cl": "clean",
    "h": "help",
}


def tool_version() -> str:
    try:
        return importlib.metadata.version("pynapi")
    except importlib.metadata.PackageNotFoundError:
        return DEFAULT_VERSION


def usage() -> None:
    print("usage: pynapi <command> [args...]")
    print("")
    print("commands:")
    print("  new (create, n) <name>   scaffold a project and fetch its dependencies")
    print("  init (install, i)        download Node.js headers (and node.lib on Windows)")
    print("  build (b) [debug]        configure with cmake and compile with ninja")
    print("  test (t)                 load the built addon with node")
    print("  clean (cl) [all]         remove the build directory (all: downloads too)")
    print("  help (h)                 show this help text")
    print("")
    print("options:")
    print("  --config <path>          load settings from a JSON file")
    print("  -v, --version            print the pynapi version")
    print("")
    print("examples:")
    print("  pynapi new native")
    print("  pynapi build debug")
    print("  pynapi clean all")


def validate_project_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise UsageError(f"missing project name ({NEW_USAGE})")
    if not PROJECT_NAME_PATTERN.match(cleaned):
        raise UsageError(
            f"invalid project name '{cleaned}': use letters, digits, '_', '-' or '.'"
        )
    return cleaned


async def _gather_all(*operations: Awaitable) -> list:
    """Run ``operations`` concurrently, wait for all of them, re-raise the first failure."""
    results = await asyncio.gather(*operations, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def write_scaffold(
    root: Path, name: str, cmake_version: str, release: RuntimeRelease
) -> None:
    """Write the build file, source stub and manifest of a new project."""
    manager = settings.settings_manager
    build_dir = manager.build_dir.as_posix()
    libs_dir = manager.libs_dir.as_posix()
    (root / SOURCE_FILE).parent.mkdir(parents=True, exist_ok=True)
    write_text_file(
        root / CMAKE_FILE,
        render_cmakelists(
            name,
            cmake_version,
            release,
            manager.napi_version,
            manager.c_standard,
            libs_dir,
        ),
    )
    write_text_file(root / SOURCE_FILE, render_source(name))
    write_text_file(
        root / MANIFEST_FILE, render_manifest(name, build_dir, tool_version())
    )


async def init_repository(root: Path) -> bool:
    """Create a git repository in ``root``; on any failure leave no .git behind."""
    git_dir = root / ".git"
    if not is_tool_available("git"):
        info("git not found; skipping repository setup")
        failure_handler(git_dir, quiet=True)(ToolNotFoundError("git"))
        return False
    try:
        await run_process(["git", "init", "--quiet"], cwd=root)
    except PynapiError as exc:
        info(f"git init failed; skipping repository setup ({exc})")
        failure_handler(git_dir, quiet=True)(exc)
        return False
    return True


async def install(root: Path) -> int:
    """Download the dependency set for the running runtime into ``root``."""
    manager = settings.settings_manager
    on_failure = failure_handler()
    try:
        require_tool(manager.node)
        release = await probe_runtime(manager.node)
        info(f"fetching Node.js {release.version} dependencies...")
        await install_dependencies(root, release, manager.dist_url, manager.libs_dir)
    except (PynapiError, OSError) as exc:
        return on_failure(exc)
    return 0


async def create(base_dir: Path, name: Optional[str]) -> int:
    """Scaffold ``base_dir/name`` and install its dependencies."""
    try:
        name = validate_project_name(name)
    except UsageError as exc:
        error(str(exc))
        return EXIT_FAILURE
    root = base_dir / name
    try:
        root.mkdir(parents=True)
    except FileExistsError:
        error(f"{root} already exists")
        return EXIT_FAILURE
    except OSError as exc:
        error(f"failed to create {root}: {exc}")
        return EXIT_FAILURE

    manager = settings.settings_manager
    on_failure = failure_handler(root)
    try:
        require_tool("cmake")
        version = await cmake_version()
        require_tool(manager.node)
        release = await probe_runtime(manager.node)
        info(f"generating project {name} (cmake {version}, node {release.version})")
        await _gather_all(
            install_dependencies(root, release, manager.dist_url, manager.libs_dir),
            asyncio.to_thread(write_scaffold, root, name, version, release),
        )
        if await init_repository(root):
            write_text_file(
                root / GIT_IGNORE_FILE,
                render_gitignore(
                    manager.build_dir.as_posix(), manager.libs_dir.as_posix()
                ),
            )
    except (PynapiError, OSError) as exc:
        return on_failure(exc)
    info(f"created {root}")
    return 0


async def _check_exists(path: Path, message: str) -> None:
    if not await asyncio.to_thread(path.exists):
        raise PynapiError(message)


async def _require_tool(tool: str) -> None:
    require_tool(tool)


async def check_build_prerequisites(root: Path, release: RuntimeRelease) -> list[str]:
    """Return one message per missing prerequisite; empty when ready to build."""
    checks = [
        _require_tool("cmake"),
        _require_tool("ninja"),
        _check_exists(release.include_dir(root), "missing header files; run 'pynapi init'"),
    ]
    if release.is_windows:
        checks.append(
            _check_exists(
                lib_file(root, settings.settings_manager.libs_dir),
                "missing library files; run 'pynapi init'",
            )
        )
    results = await asyncio.gather(*checks, return_exceptions=True)
    problems = []
    for result in results:
        if isinstance(result, PynapiError):
            problems.append(str(result))
        elif isinstance(result, BaseException):
            raise result
    return problems


async def build(root: Path, debug: bool = False) -> int:
    manager = settings.settings_manager
    try:
        require_tool(manager.node)
        release = await probe_runtime(manager.node)
    except PynapiError as exc:
        return failure_handler()(exc)
    problems = await check_build_prerequisites(root, release)
    if problems:
        for problem in problems:
            error(problem)
        return EXIT_FAILURE

    build_dir = root / manager.build_dir
    build_type = "Debug" if debug else "Release"
    on_failure = failure_handler(build_dir, project_root=root)
    try:
        build_dir.mkdir(parents=True, exist_ok=True)
        info(f"building {build_type} configuration")
        await run_steps(
            [
                [
                    "cmake",
                    "-S",
                    str(root),
                    "-B",
                    str(build_dir),
                    "-G",
                    CMAKE_GENERATOR,
                    f"-DCMAKE_BUILD_TYPE={build_type}",
                ],
                ["ninja"],
            ],
            cwd=build_dir,
        )
    except (PynapiError, OSError) as exc:
        return on_failure(exc)
    return 0


async def run_smoke_test(root: Path) -> int:
    """Load the addon with node; its output is the result."""
    try:
        node = require_tool(settings.settings_manager.node)
    except ToolNotFoundError as exc:
        return failure_handler()(exc)
    return await relay_process([str(node), "-p", SMOKE_TEST_SCRIPT], cwd=root)


def clean(root: Path, everything: bool = False) -> int:
    """Remove build output, and with ``everything`` the downloaded dependencies."""
    manager = settings.settings_manager
    targets = [root / manager.build_dir]
    if everything:
        targets.extend(find_headers_dirs(root))
        targets.append(root / manager.libs_dir)
    try:
        for target in targets:
            if target.exists():
                info(f"removing {target}")
            remove_path(target, ignore_missing=True, project_root=root)
    except (PynapiError, OSError) as exc:
        error(str(exc))
        return EXIT_FAILURE
    return 0


def _split_options(args: Sequence[str]) -> tuple[Optional[str], list[str]]:
    """Pull ``--config`` out of ``args``; raises UsageError when malformed."""
    config_path = None
    remaining = []
    index = 0
    while index < len(args):
        arg = args[index]
        if arg == "--config":
            if index + 1 >= len(args):
                raise UsageError("usage: --config <path>")
            config_path = args[index + 1]
            index += 2
            continue
        if arg.startswith("--config="):
            config_path = arg.split("=", 1)[1]
            if not config_path:
                raise UsageError("usage: --config <path>")
            index += 1
            continue
        remaining.append(arg)
        index += 1
    return config_path, remaining


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        config_path, args = _split_options(argv)
    except UsageError as exc:
        error(str(exc))
        return EXIT_FAILURE

    if not args:
        error("none of the commands 'new', 'init', 'build', 'test' or 'clean' was given")
        usage()
        return EXIT_FAILURE

    command = COMMAND_ALIASES.get(args[0], args[0])
    arg = args[1] if len(args) > 1 else None
    if command in {"-v", "--version"}:
        print(f"pynapi {tool_version()}")
        return 0
    if command in {"help", "-h", "--help"}:
        usage()
        return 0
    if command not in {"new", "init", "build", "test", "clean"}:
        error(f"unknown command '{args[0]}'")
        usage()
        return EXIT_FAILURE
    if len(args) > 2:
        error(f"too many arguments for '{command}'")
        return EXIT_FAILURE

    result = settings.load_settings(config_path)
    if result != 0:
        return result

    root = Path.cwd()
    if command == "new":
        info("generating sample project...")
        return asyncio.run(create(root, arg))
    if command == "init":
        if arg is not None:
            error("usage: pynapi init")
            return EXIT_FAILURE
        info("fetching Node.js dependencies...")
        return asyncio.run(install(root))
    if command == "build":
        if arg not in {None, "debug"}:
            error("usage: pynapi build [debug]")
            return EXIT_FAILURE
        info("building project...")
        return asyncio.run(build(root, debug=arg == "debug"))
    if command == "test":
        if arg is not None:
            error("usage: pynapi test")
            return EXIT_FAILURE
        return asyncio.run(run_smoke_test(root))
    if arg not in {None, "all"}:
        error("usage: pynapi clean [all]")
        return EXIT_FAILURE
    info("cleaning up...")
    return clean(root, everything=arg == "all")


if __name__ == "__main__":
    raise SystemExit(main())
