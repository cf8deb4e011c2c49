"""Configuration model for the ingestkit-sheets reader.

Provides ``SheetReaderConfig`` with all tunable parameters and sensible
defaults.  Supports loading overrides from YAML or JSON files via the
``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib

from pydantic import BaseModel


class SheetReaderConfig(BaseModel):
    """All tunable parameters with sensible defaults for worksheet reading."""

    # --- Private working copy ---
    temp_dir: str | None = None

    # --- Security / Resource Limits ---
    max_file_size_mb: int = 100
    allowed_extensions: list[str] = [".xlsx", ".xlsm", ".xltx", ".xltm", ".xls"]

    # --- Cell rendering ---
    max_formula_depth: int = 8
    date_format: str | None = None

    # --- Abnormal-termination cleanup ---
    register_exit_guard: bool = True
    handle_sigterm: bool = False

    # --- Logging / PII Safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> SheetReaderConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Any keys present in the file override the
        corresponding defaults; keys not present retain their defaults.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file extension is not recognized.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml

            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
