"""JSON export of view payloads."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

import numpy as np

from flowviz.log_config import get_logger

logger = get_logger(__name__)


class SupportsToDict(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


def _to_python(obj: Any) -> Any:
    """Convert common non-JSON types to JSON-friendly Python types."""
    if isinstance(obj, (np.floating, np.integer)):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, tuple):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def payload_to_json(payload: SupportsToDict | dict[str, Any], indent: int = 2) -> str:
    """Serialize a payload (or plain dict) to a JSON string."""
    data = payload if isinstance(payload, dict) else payload.to_dict()
    return json.dumps(data, indent=indent, default=_to_python, ensure_ascii=False)


def save_payload(
    payload: SupportsToDict | dict[str, Any], path: Path, indent: int = 2
) -> None:
    """Write a payload to ``path`` as JSON, creating parent directories.

    Args:
        payload: Object with ``to_dict()`` or a plain dictionary.
        path: Output JSON path.
        indent: JSON indentation.
    """
    logger.info(f"Saving payload to JSON: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload_to_json(payload, indent=indent), encoding="utf-8")
    size_kb = path.stat().st_size / 1024
    logger.info(f"Saved payload: {size_kb:.1f} KB")


def load_payload(path: Path) -> dict[str, Any]:
    """Read a payload previously written by ``save_payload``."""
    logger.info(f"Loading payload from JSON: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
