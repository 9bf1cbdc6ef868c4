"""
Parameter schema: bounds and units for the numeric render params.
Keys are dotted paths into ENGINE_DEFAULTS; defaults are read from there so
the two cannot drift.
"""
from typing import Dict

from mokugyo.core.params import ParamDef, get_param
from mokugyo.params.canonical_defaults import ENGINE_DEFAULTS


def _make_param(
    name: str,
    min_val: float = None,
    max_val: float = None,
    unit: str = None,
    integer: bool = False,
) -> ParamDef:
    """Helper to create a schema entry with its default taken from ENGINE_DEFAULTS."""
    return ParamDef(
        name=name,
        default=get_param(ENGINE_DEFAULTS, name),
        min=min_val,
        max=max_val,
        unit=unit,
        integer=integer,
    )


# -----------------------------------------------------------------------------
# PARAM_SCHEMA
# -----------------------------------------------------------------------------

PARAM_SCHEMA: Dict[str, ParamDef] = {
    p.name: p
    for p in (
        _make_param("stream.duration_min", 1, None, "min", integer=True),
        _make_param("stream.sample_rate", 8000, 192000, "Hz", integer=True),
        _make_param("schedule.interval_min_s", 1e-3, None, "s"),
        _make_param("schedule.interval_max_s", 1e-3, None, "s"),
        _make_param("service.max_duration_min", 1, None, "min", integer=True),
    )
}

OVERLAP_MODES = ("overwrite", "add")
