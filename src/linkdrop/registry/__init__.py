"""Claim registry — which link keys have been redeemed, and to whom."""
from __future__ import annotations

from linkdrop.registry.claim_registry import ClaimRecord, ClaimRegistry

__all__ = ["ClaimRecord", "ClaimRegistry"]
