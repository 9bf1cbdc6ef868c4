"""
Render configuration and the wooden-fish instrument definition.
Default values: single source is canonical_defaults.ENGINE_DEFAULTS; use resolve_params({}) for resolved defaults.
"""
from mokugyo.params.schema import PARAM_SCHEMA
from mokugyo.params.resolve import resolve_params
from mokugyo.params.timbre import WoodfishTimbre, DEFAULT_TIMBRE

__all__ = ["PARAM_SCHEMA", "resolve_params", "WoodfishTimbre", "DEFAULT_TIMBRE"]
