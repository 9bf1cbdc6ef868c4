"""
Parameter resolution: deep-merge ENGINE_DEFAULTS with incoming params, then validate.
Incoming params override defaults at any nesting level.
"""
import copy
import math
from typing import Dict, Any

from mokugyo.core.params import get_param, set_param, check_bounds
from mokugyo.params.canonical_defaults import ENGINE_DEFAULTS
from mokugyo.params.schema import PARAM_SCHEMA, OVERLAP_MODES


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dicts. override values take precedence.
    Returns a new dict (does not mutate inputs).
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def validate_params(params: dict) -> dict:
    """
    Check every schema key against its bounds and coerce to int/float in place.
    Raises ValueError naming the offending key.
    """
    for name, pdef in PARAM_SCHEMA.items():
        raw = get_param(params, name, pdef.default)
        value = check_bounds(name, raw, pdef.min, pdef.max)
        if not math.isfinite(value):
            raise ValueError(f"{name}: must be finite, got {raw!r}")
        if pdef.integer:
            if value != int(value):
                raise ValueError(f"{name}: expected an integer, got {raw!r}")
            value = int(value)
        set_param(params, name, value)

    lo = get_param(params, "schedule.interval_min_s")
    hi = get_param(params, "schedule.interval_max_s")
    if lo > hi:
        raise ValueError(f"schedule.interval_min_s ({lo}) > schedule.interval_max_s ({hi})")

    overlap = get_param(params, "mix.overlap")
    if overlap not in OVERLAP_MODES:
        raise ValueError(f"mix.overlap: expected one of {OVERLAP_MODES}, got {overlap!r}")

    return params


def resolve_params(params: dict = None) -> dict:
    """
    Resolve render params by:
    1. Starting from ENGINE_DEFAULTS
    2. Merging incoming params onto it (user params override defaults)
    3. Validating the numeric keys against PARAM_SCHEMA

    Returns a fully resolved params dict; inputs are not mutated.
    """
    merged = _deep_merge(copy.deepcopy(ENGINE_DEFAULTS), copy.deepcopy(params or {}))
    return validate_params(merged)
