"""
Error types for the comparison pipeline.

Only whole-document failures and export failures are raised. Outline and
page level problems are logged and recovered where they happen.
"""

from typing import Any


class RateCompareError(Exception):
    """Base error carrying a message plus structured context for logs."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({ctx_str})" if ctx_str else self.message

    def to_dict(self) -> dict[str, Any]:
        return {"code": type(self).__name__, "message": self.message, **self.context}


class InvalidInputError(RateCompareError):
    """Input file is absent or not a PDF. Raised before extraction starts."""


class DocumentDecodeError(RateCompareError):
    """A whole document could not be read."""

    def __init__(self, path: str, **context: Any) -> None:
        self.path = path
        super().__init__(f"Failed to parse PDF {path}", **context)


class ExportError(RateCompareError):
    """Writing the spreadsheet failed."""


class EmptyExportError(ExportError):
    """The writer was handed zero rows."""
