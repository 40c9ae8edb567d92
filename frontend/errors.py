"""
Error types reported by the frontend.

``FrontendError`` covers everything a user can cause (bad flags, missing
files, parse failures, import problems). ``FrontendPanic`` signals an
internal inconsistency inside the frontend and is not a ``FrontendError``.
"""

from typing import Optional


class FrontendError(Exception):
    """Base class for user-facing frontend errors."""


class CmdLineError(FrontendError):
    """Raised for unrecognised or malformed compiler flags."""


class SourceError(FrontendError):
    """Raised when a module cannot be read, parsed or typechecked.

    Attributes:
        file_path: Offending file, if known.
        line: 1-indexed line number, if known.
        col: 1-indexed column number, if known.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        line: Optional[int] = None,
        col: Optional[int] = None,
    ):
        self.file_path = file_path
        self.line = line
        self.col = col
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        if self.file_path is None:
            return self.message
        if self.line is None:
            return f"{self.file_path}: {self.message}"
        if self.col is None:
            return f"{self.file_path}:{self.line}: {self.message}"
        return f"{self.file_path}:{self.line}:{self.col}: {self.message}"


class FrontendPanic(Exception):
    """An internal invariant of the frontend was violated.

    Attributes:
        message: Description of the violated invariant.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
