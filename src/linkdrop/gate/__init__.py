"""Distribution gate — the administrative pause switch."""
from __future__ import annotations

from linkdrop.gate.pause import DistributionGate, PauseGate

__all__ = ["DistributionGate", "PauseGate"]
