"""Claim events — the audit trail of successful redemptions."""
from __future__ import annotations

from linkdrop.events.log import ClaimedEvent, ClaimEventLog

__all__ = ["ClaimEventLog", "ClaimedEvent"]
