"""Exception types raised by pynapi operations."""


class PynapiError(Exception):
    """Base class for failures reported to the user."""


class UsageError(PynapiError):
    pass


class ToolNotFoundError(PynapiError):
    """A required executable could not be resolved on the search path."""

    def __init__(self, tool: str):
        super().__init__(f"could not find '{tool}' in the path")
        self.tool = tool


class ProcessError(PynapiError):
    """An external command exited with a non-zero status."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class DownloadError(PynapiError):
    pass


class InvalidPathError(PynapiError):
    pass
