"""
Param parsing utilities for render params (nested dict contract).
Supports dotted keys such as "stream.sample_rate" or "encode.bitrate".
"""
from dataclasses import dataclass
from typing import Any, Optional


# -----------------------------------------------------------------------------
# Param definition (for schema/validation; lookup still via get_param)
# -----------------------------------------------------------------------------

@dataclass
class ParamDef:
    """Definition of a single parameter. Bounds/unit are optional."""
    name: str
    default: Any
    min: Optional[float] = None
    max: Optional[float] = None
    unit: Optional[str] = None
    integer: bool = False


# -----------------------------------------------------------------------------
# Lookup helpers
# -----------------------------------------------------------------------------

def get_param(params: dict, name: str, default: Any = None) -> Any:
    """
    Read a value from params, supporting dotted keys for nested dicts.
    E.g. get_param(p, "stream.sample_rate", 22050) -> p["stream"]["sample_rate"] or default.
    If any intermediate key is missing or not a dict, returns default.
    """
    if not params or not name:
        return default
    keys = name.split(".")
    current = params
    for key in keys[:-1]:
        next_val = current.get(key)
        if next_val is None or not isinstance(next_val, dict):
            return default
        current = next_val
    return current.get(keys[-1], default)


def set_param(params: dict, name: str, value: Any) -> dict:
    """Set a dotted key in place, creating intermediate dicts. Returns params."""
    keys = name.split(".")
    current = params
    for key in keys[:-1]:
        next_val = current.get(key)
        if not isinstance(next_val, dict):
            next_val = {}
            current[key] = next_val
        current = next_val
    current[keys[-1]] = value
    return params


def check_bounds(
    name: str,
    value: float,
    min: Optional[float] = None,
    max: Optional[float] = None,
) -> float:
    """
    Return value as float if it lies within [min, max] (bounds optional).
    Raises ValueError naming the param otherwise.
    """
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name}: expected a number, got {value!r}") from None
    if v != v:
        raise ValueError(f"{name}: NaN is not allowed")
    if min is not None and v < min:
        raise ValueError(f"{name}: {v} < minimum {min}")
    if max is not None and v > max:
        raise ValueError(f"{name}: {v} > maximum {max}")
    return v
