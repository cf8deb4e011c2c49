"""Enums and Pydantic models for the ingestkit-sheets reader."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class CellKind(str, Enum):
    """Closed set of cell kinds the coercer distinguishes.

    Date/time values are numeric cells with a date number format and are
    reported as ``NUMERIC``.
    """

    BLANK = "blank"
    STRING = "string"
    BOOLEAN = "boolean"
    ERROR = "error"
    FORMULA = "formula"
    NUMERIC = "numeric"


class SessionState(str, Enum):
    """Lifecycle of a ``SheetReader``.  ``CLOSED`` is terminal."""

    OPEN = "open"
    CLOSED = "closed"


class SheetDescriptor(BaseModel):
    """Snapshot of the worksheet bound to an open reader."""

    file_name: str
    original_file_name: str
    sheet_index: int
    sheet_title: str
    row_count: int
    row_size: int
    header: list[str]
    iterator_start: int
