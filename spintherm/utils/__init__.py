"""Utility functions and helpers."""

from .constants import PHYSICAL_CONSTANTS, PhysicalConstants, DEFAULT_CONSTANTS, convert_units, larmor_pulsation
from .io import TraceWriter, format_trace_line, is_null_sink, save_sites, to_json

__all__ = [
    "PHYSICAL_CONSTANTS",
    "PhysicalConstants",
    "DEFAULT_CONSTANTS",
    "convert_units",
    "larmor_pulsation",
    "TraceWriter",
    "format_trace_line",
    "is_null_sink",
    "save_sites",
    "to_json",
]
