"""Error codes, structured error model, and raisable exceptions for ingestkit-sheets.

``ErrorCode`` lists every error/warning code the reader can produce.
``ReaderError`` is the Pydantic data model describing one failure, and
``SheetReaderException`` (with one subclass per failure family) carries it
through ``raise``/``except``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the ingestkit-sheets reader.

    Values equal their names so they are stable strings suitable for
    logging and programmatic handling.  ``E_`` prefix = fatal,
    ``W_`` prefix = warning.
    """

    # Security / pre-flight
    E_SECURITY_BAD_EXTENSION = "E_SECURITY_BAD_EXTENSION"
    E_SECURITY_TOO_LARGE = "E_SECURITY_TOO_LARGE"
    E_SECURITY_BAD_MAGIC = "E_SECURITY_BAD_MAGIC"

    # Session construction
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_EMPTY = "E_PARSE_EMPTY"
    E_SHEET_INIT_FAILED = "E_SHEET_INIT_FAILED"
    E_SHEET_INDEX_INVALID = "E_SHEET_INDEX_INVALID"

    # Reads
    E_ROW_OUT_OF_RANGE = "E_ROW_OUT_OF_RANGE"
    E_EVALUATION_FAILED = "E_EVALUATION_FAILED"
    E_SESSION_CLOSED = "E_SESSION_CLOSED"

    # Cleanup
    E_CLEANUP_FAILED = "E_CLEANUP_FAILED"

    # Warnings (non-fatal)
    W_FORMULA_DEPTH_EXCEEDED = "W_FORMULA_DEPTH_EXCEEDED"
    W_GUARD_CLEANUP_FAILED = "W_GUARD_CLEANUP_FAILED"
    W_LARGE_FILE = "W_LARGE_FILE"


class ReaderError(BaseModel):
    """Structured error with code, message, and worksheet location context.

    Note: This is a Pydantic model (data structure), not a Python Exception.
    Raise it through ``SheetReaderException`` or one of its subclasses.
    """

    code: ErrorCode
    message: str
    stage: str | None = None
    recoverable: bool = False
    file_name: str | None = None
    sheet_index: int | None = None
    row_index: int | None = None


class SheetReaderException(Exception):
    """Raisable exception wrapping a ``ReaderError`` data model.

    Subclasses fix a default ``code`` and ``stage`` so call sites only need
    to pass the message and location fields.  The structured model is kept
    on ``.error`` for inspection and serialization.
    """

    default_code: ErrorCode = ErrorCode.E_SHEET_INIT_FAILED
    default_stage: str | None = None
    default_recoverable: bool = False

    def __init__(self, message: str, **kwargs: object) -> None:
        kwargs.setdefault("code", self.default_code)
        kwargs.setdefault("stage", self.default_stage)
        kwargs.setdefault("recoverable", self.default_recoverable)
        self.error = ReaderError(message=message, **kwargs)  # type: ignore[arg-type]
        super().__init__(self.error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def stage(self) -> str | None:
        return self.error.stage

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable


class InitializationError(SheetReaderException):
    """The private copy could not be created or the workbook could not be decoded."""

    default_code = ErrorCode.E_SHEET_INIT_FAILED
    default_stage = "open"


class ConfigurationError(SheetReaderException):
    """The requested sheet index does not exist in the workbook."""

    default_code = ErrorCode.E_SHEET_INDEX_INVALID
    default_stage = "open"


class RowOutOfRangeError(SheetReaderException, IndexError):
    """A row index outside ``[0, last_row_index]`` was requested."""

    default_code = ErrorCode.E_ROW_OUT_OF_RANGE
    default_stage = "read"
    default_recoverable = True


class EvaluationError(SheetReaderException):
    """The decoder or formula evaluator failed while reading a row."""

    default_code = ErrorCode.E_EVALUATION_FAILED
    default_stage = "read"


class SessionClosedError(SheetReaderException):
    """A read was attempted after the reader was closed."""

    default_code = ErrorCode.E_SESSION_CLOSED
    default_stage = "read"


class CleanupError(SheetReaderException):
    """The private working copy could not be removed."""

    default_code = ErrorCode.E_CLEANUP_FAILED
    default_stage = "close"
