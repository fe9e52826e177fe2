"""
I/O Utilities

File input/output operations.
"""

import json
from pathlib import Path
from typing import Any, Dict


def save_json(data: Dict[str, Any], file_path: Path, indent: int = 2):
    """Save data to JSON file (UTF-8, non-ASCII kept as is)."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)


def to_json(data: Dict[str, Any], indent: int = 2) -> str:
    """Serialize data to a JSON string (non-ASCII kept as is)."""
    return json.dumps(data, indent=indent, ensure_ascii=False)
