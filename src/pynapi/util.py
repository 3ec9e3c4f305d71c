"""Console output and filesystem helpers shared by every command."""

import shutil
import stat
import sys
from pathlib import Path
from typing import Callable, Iterable, Optional, TypeAlias

from pynapi.errors import InvalidPathError

PathLike: TypeAlias = Path | str
PathSpec: TypeAlias = PathLike | Iterable[PathLike] | None

EXIT_FAILURE = 1
PROTECTED_ENTRIES = ("src", "CMakeLists.txt", "package.json", ".gitignore", ".git")


def info(message: str) -> None:
    """Print a standard informational message."""
    print(f"[pynapi] {message}")


def error(message: str) -> None:
    """Print a standardized error message to stderr."""
    print(f"error: {message}", file=sys.stderr)


def _resolve_path(path: PathLike) -> Path:
    try:
        return Path(path).resolve()
    except OSError:
        return Path(path).absolute()


def _path_is_within(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False


def is_protected_entry(path: Path) -> bool:
    """True when a project-relative path is, or lives in, a scaffold entry."""
    return bool(path.parts) and path.parts[0] in PROTECTED_ENTRIES


def _is_dangerous_delete_target(
    path: PathLike, project_root: Optional[PathLike] = None
) -> bool:
    resolved = _resolve_path(path)
    if resolved == Path(resolved.anchor):
        return True
    if resolved == _resolve_path(Path.home()):
        return True
    if project_root is None:
        return False
    root = _resolve_path(project_root)
    if resolved == root or not _path_is_within(resolved, root):
        return True
    # the target must not be, or contain, a generated file or .git
    return any(_path_is_within(root / entry, resolved) for entry in PROTECTED_ENTRIES)


def remove_path(
    path: PathLike,
    ignore_missing: bool = False,
    project_root: Optional[PathLike] = None,
) -> None:
    """Delete a file, or a directory recursively.

    A missing path is a no-op when ``ignore_missing`` is set and an
    ``InvalidPathError`` otherwise. With ``project_root`` the path must sit
    strictly inside that root and must not hold any scaffold entry.
    """
    path = Path(path)
    try:
        mode = path.lstat().st_mode
    except FileNotFoundError:
        if ignore_missing:
            return
        raise InvalidPathError(f"invalid path: {path}") from None
    if _is_dangerous_delete_target(path, project_root):
        raise InvalidPathError(f"refusing to remove unsafe path: {path}")
    if stat.S_ISREG(mode) or stat.S_ISLNK(mode):
        path.unlink()
    elif stat.S_ISDIR(mode):
        shutil.rmtree(path)
    else:
        raise InvalidPathError(
            f"invalid path: {path} is neither a file nor a directory"
        )


def _as_path_list(paths: PathSpec) -> list[Path]:
    if paths is None:
        return []
    if isinstance(paths, (str, Path)):
        return [Path(paths)]
    return [Path(p) for p in paths]


def failure_handler(
    paths: PathSpec = None,
    quiet: bool = False,
    project_root: Optional[PathLike] = None,
) -> Callable[[BaseException], int]:
    """Build a handler that reports a failure and rolls back ``paths``.

    The handler returns the exit status the command should terminate with.
    Quiet handlers log nothing; they are meant for nested rollbacks whose
    caller re-raises so that the outer handler reports the error.
    """
    targets = _as_path_list(paths)

    def handle(exc: BaseException) -> int:
        if not quiet:
            error(str(exc))
        if targets and not quiet:
            info("cleaning up...")
        for target in targets:
            try:
                remove_path(target, ignore_missing=True, project_root=project_root)
            except (OSError, InvalidPathError) as cleanup_exc:
                if not quiet:
                    error(f"could not clean {target}: {cleanup_exc}")
        return EXIT_FAILURE

    return handle


def write_text_file(path: Path, contents: str) -> None:
    """Write UTF-8 text as-is, creating parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(contents)

