"""Streaming downloads of runtime headers and the Windows import library."""

import tarfile
import tempfile
import zlib
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Optional, Protocol

import httpx

from pynapi.errors import DownloadError
from pynapi.runtime import RuntimeRelease, lib_file
from pynapi.util import failure_handler, info


class Sink(Protocol):
    def write(self, chunk: bytes) -> None: ...

    def finish(self) -> None: ...

    def close(self) -> None: ...


class FileSink:
    """Write the response body straight to ``path``."""

    def __init__(self, path: Path):
        self.path = path
        self._handle: Optional[BinaryIO] = None

    def write(self, chunk: bytes) -> None:
        if self._handle is None:
            self._handle = self.path.open("wb")
        self._handle.write(chunk)

    def finish(self) -> None:
        if self._handle is None:
            self.path.touch()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


class TarGzSink:
    """Spool a .tar.gz body, then unpack it into ``dest`` once complete."""

    def __init__(self, dest: Path):
        self.dest = dest
        self._spool = tempfile.TemporaryFile()

    def write(self, chunk: bytes) -> None:
        self._spool.write(chunk)

    def finish(self) -> None:
        self._spool.seek(0)
        try:
            with tarfile.open(fileobj=self._spool, mode="r:gz") as archive:
                archive.extractall(self.dest, filter="data")
        except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
            raise DownloadError(f"failed to extract archive: {exc}") from exc

    def close(self) -> None:
        self._spool.close()


@asynccontextmanager
async def _build_client(
    client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=None, follow_redirects=True) as created:
        yield created


async def download(
    url: str, sink: Sink, client: Optional[httpx.AsyncClient] = None
) -> None:
    """GET ``url`` and drain the body into ``sink``.

    The sink is closed on every exit path; it only sees ``finish`` when the
    whole body arrived with a successful status.
    """
    info(f"downloading {url}")
    try:
        async with _build_client(client) as http:
            async with http.stream("GET", url) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    sink.write(chunk)
        sink.finish()
    except httpx.HTTPStatusError as exc:
        raise DownloadError(
            f"{url} returned {exc.response.status_code} {exc.response.reason_phrase}"
        ) from exc
    except httpx.HTTPError as exc:
        raise DownloadError(str(exc) or f"failed to download {url}") from exc
    finally:
        sink.close()


async def fetch_headers(
    root: Path,
    release: RuntimeRelease,
    dist_url: str,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    await download(release.headers_url(dist_url), TarGzSink(root), client)


async def fetch_lib(
    root: Path,
    release: RuntimeRelease,
    dist_url: str,
    libs_dir: Path,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    target = lib_file(root, libs_dir)
    target.parent.mkdir(parents=True, exist_ok=True)
    await download(release.lib_url(dist_url), FileSink(target), client)


async def install_dependencies(
    root: Path,
    release: RuntimeRelease,
    dist_url: str,
    libs_dir: Path,
    client: Optional[httpx.AsyncClient] = None,
) -> None:
    """Fetch headers (and node.lib for Windows runtimes) into ``root``.

    Whatever a failed step created is removed before the error propagates.
    """
    headers_dir = release.headers_dir(root)
    try:
        await fetch_headers(root, release, dist_url, client)
    except (DownloadError, OSError) as exc:
        failure_handler(headers_dir, quiet=True, project_root=root)(exc)
        raise
    if not release.is_windows:
        return
    try:
        await fetch_lib(root, release, dist_url, libs_dir, client)
    except (DownloadError, OSError) as exc:
        failure_handler(
            [headers_dir, root / libs_dir], quiet=True, project_root=root
        )(exc)
        raise
