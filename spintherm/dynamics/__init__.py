"""Moment dynamics simulation modules."""

from .dllb_solver import DLLBSolver, FieldAggregator
from .integrators import Sweep, EulerSweep, RK4Sweep, SymplecticSweep, SplittingSweep

__all__ = ["DLLBSolver", "FieldAggregator", "Sweep", "EulerSweep", "RK4Sweep", "SymplecticSweep", "SplittingSweep"]
