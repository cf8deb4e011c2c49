"""Pre-flight security scanner for spreadsheet source files.

Validates extension, existence, emptiness, file size, and the container
signature before a private copy is made or any decoding begins.  OOXML
workbooks are ZIP packages; legacy ``.xls`` workbooks are OLE2 compound
documents.
"""

from __future__ import annotations

import logging
import os

from ingestkit_sheets.config import SheetReaderConfig
from ingestkit_sheets.errors import ErrorCode, ReaderError

logger = logging.getLogger("ingestkit_sheets")

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# extension -> (signature, container name)
_SIGNATURES: dict[str, tuple[bytes, str]] = {
    ".xls": (_OLE2_MAGIC, "OLE2 (BIFF)"),
}
_DEFAULT_SIGNATURE = (_ZIP_MAGIC, "ZIP (OOXML)")
_LARGE_FILE_THRESHOLD_MB = 10


def expected_signature(ext: str) -> tuple[bytes, str]:
    """Return the leading bytes and container name expected for *ext*."""
    return _SIGNATURES.get(ext.lower(), _DEFAULT_SIGNATURE)


class SheetSecurityScanner:
    """Run pre-flight checks on a workbook file.

    Returns a list of errors/warnings.  Fatal errors (``E_*`` codes)
    mean the file should not be opened.
    """

    def __init__(self, config: SheetReaderConfig) -> None:
        self.config = config

    def scan(self, file_path: str) -> list[ReaderError]:
        """Run all pre-flight checks.

        Returns
        -------
        list[ReaderError]
            A list of errors/warnings.  Fatal errors have codes starting
            with ``E_``.
        """
        errors: list[ReaderError] = []

        # --- 1. Extension whitelist ---
        ext = os.path.splitext(file_path)[1].lower()
        allowed = {e.lower() for e in self.config.allowed_extensions}
        if ext not in allowed:
            errors.append(
                ReaderError(
                    code=ErrorCode.E_SECURITY_BAD_EXTENSION,
                    message=(
                        f"Unsupported workbook extension '{ext}': {file_path}. "
                        f"Expected one of: {', '.join(sorted(allowed))}"
                    ),
                    stage="security",
                    file_name=file_path,
                )
            )
            return errors

        # --- 2. File existence ---
        if not os.path.isfile(file_path):
            errors.append(
                ReaderError(
                    code=ErrorCode.E_PARSE_CORRUPT,
                    message=f"File not found or not readable: {file_path}",
                    stage="security",
                    file_name=file_path,
                )
            )
            return errors

        # --- 3. Empty file ---
        file_size = os.path.getsize(file_path)
        if file_size == 0:
            errors.append(
                ReaderError(
                    code=ErrorCode.E_PARSE_EMPTY,
                    message=f"File is empty (0 bytes): {file_path}",
                    stage="security",
                    file_name=file_path,
                )
            )
            return errors

        # --- 4. File size limit ---
        max_bytes = self.config.max_file_size_mb * 1024 * 1024
        if file_size > max_bytes:
            errors.append(
                ReaderError(
                    code=ErrorCode.E_SECURITY_TOO_LARGE,
                    message=(
                        f"File size {file_size} bytes exceeds limit of "
                        f"{max_bytes} bytes ({self.config.max_file_size_mb} MB)"
                    ),
                    stage="security",
                    file_name=file_path,
                )
            )
            return errors

        # --- 5. Large file warning ---
        large_threshold = _LARGE_FILE_THRESHOLD_MB * 1024 * 1024
        if file_size > large_threshold:
            errors.append(
                ReaderError(
                    code=ErrorCode.W_LARGE_FILE,
                    message=(
                        f"File is {file_size / (1024 * 1024):.1f} MB "
                        f"(> {_LARGE_FILE_THRESHOLD_MB} MB)"
                    ),
                    stage="security",
                    recoverable=True,
                    file_name=file_path,
                )
            )

        # --- 6. Container signature for the extension ---
        magic, container = expected_signature(ext)
        try:
            with open(file_path, "rb") as f:
                header = f.read(len(magic))
        except OSError as exc:
            errors.append(
                ReaderError(
                    code=ErrorCode.E_PARSE_CORRUPT,
                    message=f"Cannot read file header: {exc}",
                    stage="security",
                    file_name=file_path,
                )
            )
            return errors
        if header != magic:
            errors.append(
                ReaderError(
                    code=ErrorCode.E_SECURITY_BAD_MAGIC,
                    message=(
                        f"'{ext}' file does not start with the {container} "
                        f"signature: {file_path}"
                    ),
                    stage="security",
                    file_name=file_path,
                )
            )

        return errors
