"""Analysis and post-processing modules."""

from .observables import MomentAnalyzer

__all__ = ["MomentAnalyzer"]
