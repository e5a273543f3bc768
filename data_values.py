#!/usr/bin/env python3
"""
Data Values
Normalization of the render data environment and value-to-text conversion
"""

import json
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Tuple


def normalize_value(value: Any) -> Any:
    """
    Convert one value to the closed set the pipeline works with

    Mappings become dicts with string keys, tuples/sets/lists become lists,
    Decimal becomes int or float. Scalars, dates and None pass through.
    """
    if value is None or isinstance(value, (str, bool, int, float, date, time)):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, Mapping):
        return {str(key): normalize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return [normalize_value(item) for item in sorted(value, key=str)]
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


def normalize_data(data: Any) -> Dict[str, Any]:
    """Normalize the top-level data environment; None counts as an empty one"""
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"render data must be a mapping, got {type(data).__name__}")
    return normalize_value(data)


def to_text(value: Any) -> str:
    """Render a value the way it should read inside the document"""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, list):
        return '[' + ' '.join(to_text(item) for item in value) + ']'
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def resolve_path(scope: Any, path: str) -> Tuple[bool, Any]:
    """
    Walk a dotted path ("client.address.city") through nested dicts and lists

    Returns:
        (found, value); numeric segments index into lists
    """
    current = scope
    for segment in path.split('.'):
        if segment == '':
            continue
        if isinstance(current, Mapping):
            if segment not in current:
                return False, None
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return False, None
            current = current[index]
        else:
            return False, None
    return True, current


def is_truthy(value: Any) -> bool:
    """Truthiness as templates see it: empty strings, collections, zero and None are false"""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, list, dict)):
        return len(value) > 0
    return True
