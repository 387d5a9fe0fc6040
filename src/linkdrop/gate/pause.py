"""DistributionGate — admin-controlled pause switch for claims."""
from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from linkdrop.errors import UnauthorizedError
from linkdrop.signing.addresses import normalize_address, same_address

logger = logging.getLogger(__name__)


@runtime_checkable
class PauseGate(Protocol):
    """What the claim orchestrator needs from a pause switch."""

    def is_paused(self) -> bool:
        ...


class DistributionGate:
    """Pause flag that only *admin* may flip.

    Pausing never touches claim records; unpausing simply lets claims
    through again.

    Parameters
    ----------
    admin:
        Address allowed to pause and unpause.
    paused:
        Initial state. Defaults to running.
    """

    def __init__(self, admin: str, paused: bool = False) -> None:
        self._admin = normalize_address(admin)
        self._paused = paused
        self._lock = threading.Lock()

    @property
    def admin(self) -> str:
        """The administrative address."""
        return self._admin

    def is_paused(self) -> bool:
        """Return True while claims are paused."""
        with self._lock:
            return self._paused

    def pause(self, caller: str) -> None:
        """Pause claims. No-op if already paused.

        Raises
        ------
        UnauthorizedError
            If *caller* is not the admin.
        """
        self._set(caller, True)

    def unpause(self, caller: str) -> None:
        """Resume claims. No-op if already running.

        Raises
        ------
        UnauthorizedError
            If *caller* is not the admin.
        """
        self._set(caller, False)

    def _set(self, caller: str, paused: bool) -> None:
        action = "pause" if paused else "unpause"
        if not same_address(caller, self._admin):
            logger.warning("Rejected %s by non-admin %s", action, caller)
            raise UnauthorizedError(caller, action)
        with self._lock:
            changed = self._paused != paused
            self._paused = paused
        if changed:
            logger.info("Claims %s by %s", "paused" if paused else "unpaused", caller)
