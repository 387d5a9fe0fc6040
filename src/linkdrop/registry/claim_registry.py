"""ClaimRegistry — single-use record of redeemed link keys.

Maps each link key to the receiver it was redeemed for. Claimed is a
monotone state: once a link key has a receiver it is never reassigned or
cleared through the public API.

The registry keeps a journal of ``record_claim`` calls so the claim
orchestrator can undo the writes of a claim whose asset transfer failed.
:meth:`ClaimRegistry.checkpoint` and :meth:`ClaimRegistry.rollback_to` are
the only way a record disappears, and they only ever remove records added
after the checkpoint was taken.
"""
from __future__ import annotations

import datetime
import threading
from dataclasses import dataclass, field

from linkdrop.errors import AlreadyClaimedError
from linkdrop.signing.addresses import normalize_address


@dataclass(frozen=True)
class ClaimRecord:
    """A redeemed link.

    Parameters
    ----------
    link_key:
        Checksum address of the link's one-time key.
    receiver:
        Checksum address the item was sent to.
    claimed_at:
        UTC datetime when the claim was recorded.
    """

    link_key: str
    receiver: str
    claimed_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "link_key": self.link_key,
            "receiver": self.receiver,
            "claimed_at": self.claimed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ClaimRecord":
        """Reconstruct a ClaimRecord from :meth:`to_dict` output."""
        return cls(
            link_key=normalize_address(str(data["link_key"])),
            receiver=normalize_address(str(data["receiver"])),
            claimed_at=datetime.datetime.fromisoformat(str(data["claimed_at"])),
        )


class ClaimRegistry:
    """In-memory registry of claimed link keys.

    Thread-safe. Lookups accept addresses in any valid form; records are
    stored under the checksum address.

    Example
    -------
    ::

        registry = ClaimRegistry()
        registry.record_claim(link_key, receiver)
        assert registry.is_claimed(link_key)
        assert registry.claimed_receiver(link_key) == receiver
    """

    def __init__(self) -> None:
        self._records: dict[str, ClaimRecord] = {}
        self._journal: list[str] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def is_claimed(self, link_key: str) -> bool:
        """Return True if a receiver has been recorded for *link_key*."""
        key = normalize_address(link_key)
        with self._lock:
            return key in self._records

    def claimed_receiver(self, link_key: str) -> str | None:
        """Return the recorded receiver for *link_key*, or None."""
        key = normalize_address(link_key)
        with self._lock:
            record = self._records.get(key)
        return record.receiver if record is not None else None

    def get(self, link_key: str) -> ClaimRecord | None:
        """Return the full :class:`ClaimRecord` for *link_key*, or None."""
        key = normalize_address(link_key)
        with self._lock:
            return self._records.get(key)

    def records(self) -> list[ClaimRecord]:
        """Return all records in the order they were claimed."""
        with self._lock:
            return list(self._records.values())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def record_claim(
        self,
        link_key: str,
        receiver: str,
        claimed_at: datetime.datetime | None = None,
    ) -> ClaimRecord:
        """Record *receiver* as the redeemer of *link_key*.

        Parameters
        ----------
        link_key:
            The link key being redeemed.
        receiver:
            The address receiving the item.
        claimed_at:
            Optional timestamp; defaults to now (UTC).

        Returns
        -------
        ClaimRecord
            The stored record.

        Raises
        ------
        AlreadyClaimedError
            If *link_key* already has a recorded receiver.
        """
        key = normalize_address(link_key)
        record = ClaimRecord(
            link_key=key,
            receiver=normalize_address(receiver),
            claimed_at=claimed_at or datetime.datetime.now(datetime.timezone.utc),
        )
        with self._lock:
            existing = self._records.get(key)
            if existing is not None:
                raise AlreadyClaimedError(key, existing.receiver)
            self._records[key] = record
            self._journal.append(key)
        return record

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def checkpoint(self) -> int:
        """Return a marker for the current journal position."""
        with self._lock:
            return len(self._journal)

    def rollback_to(self, checkpoint: int) -> list[str]:
        """Undo every ``record_claim`` made after *checkpoint*.

        Parameters
        ----------
        checkpoint:
            A value previously returned by :meth:`checkpoint`.

        Returns
        -------
        list[str]
            The link keys that were un-recorded, most recent first.
        """
        with self._lock:
            if checkpoint < 0 or checkpoint > len(self._journal):
                raise ValueError(f"Unknown checkpoint {checkpoint}.")
            undone: list[str] = []
            while len(self._journal) > checkpoint:
                key = self._journal.pop()
                del self._records[key]
                undone.append(key)
        return undone

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, object]]:
        """Serialize all records keyed by link key."""
        with self._lock:
            return {key: record.to_dict() for key, record in self._records.items()}

    def restore(self, data: dict[str, dict[str, object]]) -> None:
        """Load records previously produced by :meth:`to_dict`.

        Restored records are not journaled and cannot be rolled back.

        Raises
        ------
        AlreadyClaimedError
            If a restored link key is already recorded for a different receiver.
        """
        restored = [ClaimRecord.from_dict(entry) for entry in data.values()]
        with self._lock:
            for record in restored:
                existing = self._records.get(record.link_key)
                if existing is not None and existing.receiver != record.receiver:
                    raise AlreadyClaimedError(record.link_key, existing.receiver)
                self._records[record.link_key] = record

    def __len__(self) -> int:
        """Return the number of claimed link keys."""
        with self._lock:
            return len(self._records)

    def __contains__(self, link_key: object) -> bool:
        """Support ``link_key in registry``."""
        if not isinstance(link_key, str):
            return False
        try:
            return self.is_claimed(link_key)
        except ValueError:
            return False
