"""Identity of the running Node.js runtime and the on-disk layout derived from it."""

from pathlib import Path
from typing import NamedTuple

from pynapi.errors import ProcessError
from pynapi.process import run_process

PROBE_SCRIPT = "[process.version, process.platform, process.arch].join(' ')"
HEADERS_DIR_GLOB = "node-v*"

WINDOWS_LIB_ARCHS = {
    "x64": "win-x64",
    "arm64": "win-arm64",
}


class RuntimeRelease(NamedTuple):
    """Version, platform and CPU architecture as reported by ``node``."""

    version: str
    platform: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.platform == "win32"

    @property
    def win_arch(self) -> str:
        return WINDOWS_LIB_ARCHS.get(self.arch, "win-x86")

    def headers_dir(self, root: Path) -> Path:
        return root / f"node-{self.version}"

    def include_dir(self, root: Path) -> Path:
        return self.headers_dir(root) / "include" / "node"

    def base_url(self, dist_url: str) -> str:
        return f"{dist_url.rstrip('/')}/{self.version}"

    def headers_url(self, dist_url: str) -> str:
        return f"{self.base_url(dist_url)}/node-{self.version}-headers.tar.gz"

    def lib_url(self, dist_url: str) -> str:
        return f"{self.base_url(dist_url)}/{self.win_arch}/node.lib"


def parse_release(output: str) -> RuntimeRelease:
    parts = output.split()
    if len(parts) != 3 or not parts[0].startswith("v"):
        raise ProcessError(f"unexpected runtime identity: {output.strip()!r}")
    return RuntimeRelease(*parts)


async def probe_runtime(node: str = "node") -> RuntimeRelease:
    """Ask the runtime on the search path for its release descriptor."""
    output = await run_process([node, "-p", PROBE_SCRIPT], capture=True, echo=False)
    return parse_release(output)


def lib_file(root: Path, libs_dir: Path) -> Path:
    return root / libs_dir / "node.lib"


def find_headers_dirs(root: Path) -> list[Path]:
    """Every downloaded header bundle in ``root``, whatever its version."""
    return sorted(path for path in root.glob(HEADERS_DIR_GLOB) if path.is_dir())
