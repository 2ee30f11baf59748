"""Laser heating and thermal bath models."""

from .laser import Temperatures, HeatCapacity, Coupling, Pulse, TTMConfig, LaserExcitation

__all__ = ["Temperatures", "HeatCapacity", "Coupling", "Pulse", "TTMConfig", "LaserExcitation"]
