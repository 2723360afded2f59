"""
Utility functions for report formatting and saving.

This module provides functions to:
- Format byte counts (GB totals, human-readable sizes)
- Save reports as JSON, or as a table plus JSON pair
"""
import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from ecr_reaper.logging_utils import get_logger

logger = get_logger(__name__)

BYTES_PER_GB = 1073741824


# ============================================================================
# Formatting Utilities
# ============================================================================

def bytes_to_gb(num: int) -> float:
    """Convert a byte count to GB (1 GB = 1073741824 bytes)."""
    return num / BYTES_PER_GB


def sizeof_fmt(num: float, suffix: str = "B") -> str:
    """Format bytes into human-readable size.

    Args:
        num: Number of bytes
        suffix: Suffix to append (default: "B")

    Returns:
        Formatted string like "1.5GiB", "500.0MiB", etc.
    """
    for unit in ("", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi"):
        if abs(num) < 1024.0:
            return f"{num:3.1f}{unit}{suffix}"
        num /= 1024.0
    return f"{num:.1f}Yi{suffix}"


# ============================================================================
# Report Saving Functions
# ============================================================================

def _to_jsonable(data: Any) -> Any:
    """Recursively convert values json.dump can't handle.

    datetime/date become ISO strings, sets become sorted lists, enums their value.
    """
    if isinstance(data, (datetime, date)):
        return data.isoformat()
    elif isinstance(data, Enum):
        return data.value
    elif isinstance(data, (set, frozenset)):
        try:
            return [_to_jsonable(item) for item in sorted(data)]
        except TypeError:
            return [_to_jsonable(item) for item in data]
    elif isinstance(data, dict):
        return {k: _to_jsonable(v) for k, v in data.items()}
    elif isinstance(data, (list, tuple)):
        return [_to_jsonable(item) for item in data]
    return data


def save_json(path: str, data: Any) -> str:
    """
    Write JSON data to a file with indentation.

    Args:
        path: Path to save the JSON file
        data: Data to save

    Returns:
        Path to the saved file
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    with open(p, 'w') as f:
        json.dump(_to_jsonable(data), f, indent=2)
    logger.debug(f"Saved JSON to {p}")
    return str(p)


def save_table_and_json(base_path: str, table_str: str, json_obj: Dict[str, Any]) -> str:
    """
    Write a table string to <base>.txt and JSON object to <base>.json.

    Args:
        base_path: Base path for the reports (without extension)
        table_str: Table content to write
        json_obj: JSON object to write

    Returns:
        Path to the saved JSON file
    """
    base = Path(base_path)
    base.parent.mkdir(parents=True, exist_ok=True)

    with open(f"{base}.txt", "w") as f:
        f.write(table_str)

    json_path = save_json(f"{base}.json", json_obj)

    logger.info(f"Saved reports to {base}.txt and {base}.json")
    return json_path
