"""Private working copies of source workbooks."""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path


def create_temp_copy(original_path: str, temp_dir: str | None = None) -> str:
    """Copy *original_path* to a fresh temporary file and return its path.

    The copy keeps the source suffix because openpyxl picks its reader from
    the file extension.  The file name starts with the source stem so stray
    copies can be traced back to their origin.

    Raises:
        OSError: If the temporary file cannot be created or written.
    """
    source = Path(original_path)
    fd, temp_path = tempfile.mkstemp(
        prefix=f"{source.stem}_",
        suffix=source.suffix,
        dir=temp_dir,
    )
    os.close(fd)
    try:
        shutil.copyfile(source, temp_path)
    except OSError:
        with contextlib.suppress(FileNotFoundError):
            os.remove(temp_path)
        raise
    return temp_path
