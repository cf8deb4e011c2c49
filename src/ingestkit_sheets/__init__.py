"""ingestkit-sheets -- header-keyed, string-typed row access to spreadsheet worksheets.

Public API re-exports for convenient access.
"""

from ingestkit_sheets.coercion import cell_to_string, classify_cell
from ingestkit_sheets.config import SheetReaderConfig
from ingestkit_sheets.errors import (
    CleanupError,
    ConfigurationError,
    ErrorCode,
    EvaluationError,
    InitializationError,
    ReaderError,
    RowOutOfRangeError,
    SessionClosedError,
    SheetReaderException,
)
from ingestkit_sheets.evaluation import CachedValueEvaluator
from ingestkit_sheets.guard import ResourceGuard, default_guard
from ingestkit_sheets.models import CellKind, SessionState, SheetDescriptor
from ingestkit_sheets.protocols import FormulaEvaluator, RowSource, TempFileFactory
from ingestkit_sheets.reader import SheetReader
from ingestkit_sheets.rows import blank_row, materialize_row
from ingestkit_sheets.security import SheetSecurityScanner
from ingestkit_sheets.tempfiles import create_temp_copy
from ingestkit_sheets.xls import XlsWorkbook, load_xls_workbook

__all__ = [
    # Reader
    "SheetReader",
    "SheetDescriptor",
    "SessionState",
    # Cells and rows
    "CellKind",
    "cell_to_string",
    "classify_cell",
    "materialize_row",
    "blank_row",
    # Legacy .xls
    "XlsWorkbook",
    "load_xls_workbook",
    # Collaborators
    "CachedValueEvaluator",
    "FormulaEvaluator",
    "TempFileFactory",
    "RowSource",
    "create_temp_copy",
    "ResourceGuard",
    "default_guard",
    "SheetSecurityScanner",
    # Errors
    "ErrorCode",
    "ReaderError",
    "SheetReaderException",
    "InitializationError",
    "ConfigurationError",
    "RowOutOfRangeError",
    "EvaluationError",
    "SessionClosedError",
    "CleanupError",
    # Config
    "SheetReaderConfig",
]
