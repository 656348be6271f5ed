"""
Output helpers for printing agent results.
"""
from __future__ import annotations

import dataclasses
import json
from typing import Any, TextIO, Optional


def to_jsonable(value: Any) -> Any:
    """Turn dataclasses (and containers of them) into plain JSON values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def print_json(value: Any, file: Optional[TextIO] = None) -> None:
    """Pretty-print ``value`` as two-space indented JSON."""
    print(json.dumps(to_jsonable(value), indent=2, default=str), file=file)
