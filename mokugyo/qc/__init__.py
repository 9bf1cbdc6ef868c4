"""
Quality Control module for evaluating rendered streams.
"""
from mokugyo.qc.qc import analyze, find_event_regions
from mokugyo.qc.thresholds import QC_THRESHOLDS

__all__ = ["analyze", "find_event_regions", "QC_THRESHOLDS"]
