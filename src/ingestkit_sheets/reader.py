"""SheetReader -- header-keyed, string-typed row access to one worksheet.

A reader owns a private copy of the source workbook for its whole life:

1. Pre-flight scan of the source via :class:`SheetSecurityScanner`.
2. Copy the source to a private temporary file.
3. Decode the copy (openpyxl, or xlrd for ``.xls``) and bind the worksheet.
4. Fix the row bounds and ``row_size`` from the cells present in the first row.
5. Register an exit-time cleanup with the :class:`ResourceGuard`.
6. Bind the header, read from the first row or supplied by the caller.

``close()`` releases the workbook, deletes the private copy, and removes
the exit-time cleanup.  Any failure during construction releases whatever
was already acquired before the error is raised.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Sequence

import openpyxl
import pandas as pd
from openpyxl.workbook.workbook import Workbook

from ingestkit_sheets.config import SheetReaderConfig
from ingestkit_sheets.errors import (
    CleanupError,
    ConfigurationError,
    ErrorCode,
    EvaluationError,
    InitializationError,
    SessionClosedError,
    SheetReaderException,
)
from ingestkit_sheets.evaluation import CachedValueEvaluator
from ingestkit_sheets.guard import ResourceGuard, default_guard
from ingestkit_sheets.models import SessionState, SheetDescriptor
from ingestkit_sheets.protocols import FormulaEvaluator, RowSource, TempFileFactory
from ingestkit_sheets.rows import (
    column_bound,
    last_row_index,
    materialize_row,
    physical_cell_count,
)
from ingestkit_sheets.security import SheetSecurityScanner
from ingestkit_sheets.tempfiles import create_temp_copy
from ingestkit_sheets.xls import XlsWorkbook, is_xls_path, load_xls_workbook

logger = logging.getLogger("ingestkit_sheets")

EvaluatorFactory = Callable[[str, int], FormulaEvaluator]


class SheetReader:
    """Read one worksheet as fixed-width rows of strings.

    Parameters
    ----------
    path:
        Source workbook (``.xlsx``, ``.xlsm``, ``.xltx``, ``.xltm`` or ``.xls``).
    sheet_index:
        Zero-based worksheet index.
    headers:
        Field names.  When *None*, the first row is read as the header and
        iteration starts at row 1.  When given, no row is consumed as the
        header and iteration starts at row 0.
    config:
        Reader configuration.  Uses defaults when *None*.
    evaluator_factory:
        Builds the formula evaluator from ``(private_copy_path, sheet_index)``.
        Defaults to :class:`CachedValueEvaluator`.
    temp_file_factory:
        Creates the private copy.  Defaults to :func:`create_temp_copy`.
    guard:
        Exit-time cleanup registry.  Defaults to the process-wide guard.

    Raises
    ------
    InitializationError
        The source failed pre-flight checks, could not be copied, or could
        not be decoded.
    ConfigurationError
        *sheet_index* does not name a worksheet of the workbook.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        sheet_index: int = 0,
        headers: Sequence[str] | None = None,
        *,
        config: SheetReaderConfig | None = None,
        evaluator_factory: EvaluatorFactory | None = None,
        temp_file_factory: TempFileFactory | None = None,
        guard: ResourceGuard | None = None,
    ) -> None:
        self._config = config or SheetReaderConfig()
        self._original_file_name = os.fspath(path)
        self._evaluator_factory = evaluator_factory or CachedValueEvaluator
        self._temp_file_factory = temp_file_factory or create_temp_copy
        self._guard = guard if guard is not None else default_guard()

        self._state = SessionState.CLOSED
        self._file_name: str | None = None
        self._workbook: Workbook | XlsWorkbook | None = None
        self._sheet: RowSource | None = None
        self._evaluator: FormulaEvaluator | None = None
        self._guard_token: int | None = None
        self._active_sheet_index = sheet_index
        self._row_size = 0
        self._last_row = -1
        self._max_column = 1

        self._open(sheet_index)
        try:
            if headers is None:
                self._iterator_start = 1
                self._header = self.read_row(0)
            else:
                self._iterator_start = 0
                self._header = list(headers)
        except BaseException:
            self._abort()
            raise

        logger.info(
            "ingestkit_sheets | file=%s | sheet=%d | rows=%d | columns=%d",
            os.path.basename(self._original_file_name),
            self._active_sheet_index,
            self.row_count,
            self._row_size,
        )
        if self._config.log_sample_data:
            logger.debug("ingestkit_sheets | header=%s", self._header)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def file_name(self) -> str | None:
        """Path of the private working copy."""
        return self._file_name

    @property
    def original_file_name(self) -> str:
        """Path the reader was constructed with."""
        return self._original_file_name

    @property
    def active_sheet_index(self) -> int:
        return self._active_sheet_index

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN

    @property
    def row_size(self) -> int:
        """Width of every materialized row."""
        return self._row_size

    @property
    def iterator_start(self) -> int:
        """First row index produced by :meth:`iter_rows` (1 when the header is read from row 0)."""
        return self._iterator_start

    @property
    def header(self) -> list[str]:
        return list(self._header)

    field_names = header

    @property
    def row_count(self) -> int:
        """Number of rows in the sheet, header row included."""
        self._require_sheet()
        return self._last_row + 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_row(self, index: int) -> list[str]:
        """Return row *index* as exactly :attr:`row_size` strings.

        Raises:
            RowOutOfRangeError: If *index* is outside ``[0, row_count - 1]``.
            EvaluationError: If the decoder or formula evaluator fails.
        """
        sheet = self._require_sheet()
        assert self._evaluator is not None
        try:
            return materialize_row(
                sheet,
                index,
                self._row_size,
                self._evaluator,
                date_format=self._config.date_format,
                max_depth=self._config.max_formula_depth,
                last_row=self._last_row,
                max_column=self._max_column,
            )
        except SheetReaderException:
            raise
        except Exception as exc:
            logger.error(
                "ingestkit_sheets | file=%s | code=%s | detail=%s",
                self._original_file_name,
                ErrorCode.E_EVALUATION_FAILED.value,
                exc,
            )
            raise EvaluationError(
                f"Failed to read row {index} of {self._original_file_name}: {exc}",
                file_name=self._original_file_name,
                sheet_index=self._active_sheet_index,
                row_index=index,
            ) from exc

    def read_all(self) -> list[list[str]]:
        """Return every row of the sheet, header row included, in order."""
        return [self.read_row(index) for index in range(self.row_count)]

    def iter_rows(self) -> Iterator[list[str]]:
        """Return a fresh iterator over the data rows.

        Starts at :attr:`iterator_start` and ends at the last row.  Each
        call starts over; a single iterator is forward-only.
        """
        self._require_sheet()
        return self._generate_rows(self._iterator_start)

    def __iter__(self) -> Iterator[list[str]]:
        return self.iter_rows()

    def iter_records(self) -> Iterator[dict[str, str]]:
        """Yield each data row as a ``{field_name: value}`` dict.

        Pairs are cut to the shorter of header and row when their lengths
        differ.
        """
        header = self._header
        for row in self.iter_rows():
            yield dict(zip(header, row))

    def to_dataframe(self) -> pd.DataFrame:
        """Return the data rows as a DataFrame of strings keyed by the header."""
        rows = list(self.iter_rows())
        return pd.DataFrame(rows, columns=self._column_labels(), dtype=str)

    def describe(self) -> SheetDescriptor:
        sheet = self._require_sheet()
        return SheetDescriptor(
            file_name=self._file_name or "",
            original_file_name=self._original_file_name,
            sheet_index=self._active_sheet_index,
            sheet_title=sheet.title,
            row_count=self.row_count,
            row_size=self._row_size,
            header=self.header,
            iterator_start=self._iterator_start,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the workbook and delete the private copy.

        Calling ``close()`` again is a no-op.  If the private copy cannot be
        deleted, :class:`CleanupError` is raised and the exit-time cleanup
        stays registered so deletion is retried at interpreter exit.
        """
        self._state = SessionState.CLOSED
        self._release(strict=True)
        if self._guard_token is not None:
            self._guard.unregister(self._guard_token)
            self._guard_token = None
        logger.debug(
            "ingestkit_sheets | file=%s | closed", self._original_file_name
        )

    def __enter__(self) -> SheetReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self._original_file_name!r}, "
            f"sheet_index={self._active_sheet_index}, state={self._state.value})"
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open(self, sheet_index: int) -> None:
        source = self._original_file_name

        findings = SheetSecurityScanner(self._config).scan(source)
        fatal = [e for e in findings if e.code.value.startswith("E_")]
        for warning in findings:
            if warning not in fatal:
                logger.warning(
                    "ingestkit_sheets | file=%s | code=%s | detail=%s",
                    source,
                    warning.code.value,
                    warning.message,
                )
        if fatal:
            first = fatal[0]
            self._log_open_failure(first.code, first.message)
            raise InitializationError(first.message, code=first.code, file_name=source)

        try:
            self._file_name = self._temp_file_factory(source, self._config.temp_dir)
        except Exception as exc:
            self._log_open_failure(ErrorCode.E_SHEET_INIT_FAILED, str(exc))
            raise InitializationError(
                f"Unable to create a private copy of {source}: {exc}",
                file_name=source,
            ) from exc

        try:
            self._workbook = self._load_workbook(self._file_name)
        except Exception as exc:
            self._log_open_failure(ErrorCode.E_SHEET_INIT_FAILED, str(exc))
            self._abort()
            raise InitializationError(
                f"Unable to create a workbook from {source}: {exc}",
                file_name=source,
            ) from exc

        sheet_count = len(self._workbook.worksheets)
        if sheet_index < 0 or sheet_index >= sheet_count:
            message = (
                f"Sheet index {sheet_index} is out of range for {source}: "
                f"workbook has {sheet_count} worksheet(s)."
            )
            self._log_open_failure(ErrorCode.E_SHEET_INDEX_INVALID, message)
            self._abort()
            raise ConfigurationError(message, file_name=source, sheet_index=sheet_index)

        try:
            self._sheet = self._workbook.worksheets[sheet_index]
            self._last_row = last_row_index(self._sheet)
            self._max_column = column_bound(self._sheet)
            self._row_size = physical_cell_count(self._sheet, 0)
            self._evaluator = self._evaluator_factory(self._file_name, sheet_index)
        except Exception as exc:
            self._log_open_failure(ErrorCode.E_SHEET_INIT_FAILED, str(exc))
            self._abort()
            raise InitializationError(
                f"Unable to bind sheet {sheet_index} of {source}: {exc}",
                file_name=source,
                sheet_index=sheet_index,
            ) from exc

        self._state = SessionState.OPEN
        if self._config.register_exit_guard:
            self._guard_token = self._guard.register(self._emergency_cleanup)
            if self._config.handle_sigterm:
                self._guard.install_sigterm_handler()

    @staticmethod
    def _load_workbook(file_path: str) -> Workbook | XlsWorkbook:
        if is_xls_path(file_path):
            return load_xls_workbook(file_path)
        return openpyxl.load_workbook(file_path)

    def _log_open_failure(self, code: ErrorCode, detail: str) -> None:
        logger.error(
            "ingestkit_sheets | file=%s | code=%s | detail=%s",
            self._original_file_name,
            code.value,
            detail,
        )

    def _require_sheet(self) -> RowSource:
        if self._state is not SessionState.OPEN or self._sheet is None:
            raise SessionClosedError(
                f"Reader for {self._original_file_name} is closed.",
                file_name=self._original_file_name,
                sheet_index=self._active_sheet_index,
            )
        return self._sheet

    def _generate_rows(self, start: int) -> Iterator[list[str]]:
        index = start
        while index < self.row_count:
            yield self.read_row(index)
            index += 1

    def _column_labels(self) -> list[str]:
        labels = list(self._header[: self._row_size])
        labels.extend(f"column_{i}" for i in range(len(labels), self._row_size))
        return labels

    def _release(self, *, strict: bool) -> None:
        try:
            self._close_workbook()
        finally:
            self._delete_private_copy(strict=strict)

    def _close_workbook(self) -> None:
        evaluator, self._evaluator = self._evaluator, None
        workbook, self._workbook = self._workbook, None
        self._sheet = None
        try:
            close_evaluator = getattr(evaluator, "close", None)
            if close_evaluator is not None:
                close_evaluator()
        finally:
            if workbook is not None:
                workbook.close()

    def _delete_private_copy(self, *, strict: bool) -> None:
        path = self._file_name
        if path is None or not os.path.exists(path):
            return
        try:
            os.remove(path)
        except OSError as exc:
            if strict:
                logger.error(
                    "ingestkit_sheets | file=%s | code=%s | detail=%s",
                    path,
                    ErrorCode.E_CLEANUP_FAILED.value,
                    exc,
                )
                raise CleanupError(
                    f"File {path} could not be deleted: {exc}",
                    file_name=path,
                ) from exc
            logger.warning(
                "ingestkit_sheets | file=%s | code=%s | detail=%s",
                path,
                ErrorCode.W_GUARD_CLEANUP_FAILED.value,
                exc,
            )

    def _abort(self) -> None:
        """Undo a partially completed construction without raising."""
        self._state = SessionState.CLOSED
        if self._guard_token is not None:
            self._guard.unregister(self._guard_token)
            self._guard_token = None
        try:
            self._release(strict=False)
        except Exception as exc:
            logger.warning(
                "ingestkit_sheets | file=%s | code=%s | detail=%s",
                self._original_file_name,
                ErrorCode.W_GUARD_CLEANUP_FAILED.value,
                exc,
            )

    def _emergency_cleanup(self) -> None:
        self._state = SessionState.CLOSED
        self._guard_token = None
        self._release(strict=False)
