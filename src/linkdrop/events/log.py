"""ClaimEventLog — append-only JSONL record of successful claims.

Each successful redemption produces exactly one :class:`ClaimedEvent`.
Events are first *staged* by the claim orchestrator and only *committed*
(written to the JSONL file or in-memory buffer and delivered to
subscribers) once the outermost claim has succeeded. Staged events belonging
to a claim that fails are discarded with :meth:`ClaimEventLog.rollback_to`,
so observers never see a redemption that did not happen.
"""
from __future__ import annotations

import datetime
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from linkdrop.signing.addresses import normalize_address

logger = logging.getLogger(__name__)

EVENT_TYPE: str = "claimed"


@dataclass(frozen=True)
class ClaimedEvent:
    """A successful redemption.

    Parameters
    ----------
    link_key:
        The redeemed link key.
    item_id:
        The transferred item.
    receiver:
        Address the item was sent to.
    timestamp:
        UTC datetime of the redemption.
    """

    link_key: str
    item_id: int
    receiver: str
    timestamp: datetime.datetime

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary suitable for JSON encoding.

        ``item_id`` is emitted as a decimal string so 256-bit identifiers
        survive JSON consumers that parse numbers as doubles.
        """
        return {
            "event_type": EVENT_TYPE,
            "link_key": self.link_key,
            "item_id": str(self.item_id),
            "receiver": self.receiver,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ClaimedEvent":
        """Reconstruct a ClaimedEvent from :meth:`to_dict` output."""
        return cls(
            link_key=normalize_address(str(data["link_key"])),
            item_id=int(str(data["item_id"])),
            receiver=normalize_address(str(data["receiver"])),
            timestamp=datetime.datetime.fromisoformat(str(data["timestamp"])),
        )


class ClaimEventLog:
    """Append-only log of :class:`ClaimedEvent` records.

    Thread-safe. Committed events are appended as JSON lines to *log_path*
    when one is configured, otherwise to an in-memory buffer.

    Parameters
    ----------
    log_path:
        Path to the JSONL file. Parent directories are created. If None,
        committed lines are kept in memory only.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path
        self._staged: list[ClaimedEvent] = []
        self._committed: list[ClaimedEvent] = []
        self._buffer: list[str] = []
        self._subscribers: list[Callable[[ClaimedEvent], None]] = []
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def append(self, event: ClaimedEvent) -> None:
        """Stage *event*; it becomes visible on :meth:`commit`."""
        with self._lock:
            self._staged.append(event)

    def checkpoint(self) -> int:
        """Return a marker for the current staging position."""
        with self._lock:
            return len(self._staged)

    def rollback_to(self, checkpoint: int) -> int:
        """Discard events staged after *checkpoint*; return how many."""
        with self._lock:
            if checkpoint < 0 or checkpoint > len(self._staged):
                raise ValueError(f"Unknown checkpoint {checkpoint}.")
            dropped = len(self._staged) - checkpoint
            del self._staged[checkpoint:]
        return dropped

    def commit(self) -> list[ClaimedEvent]:
        """Publish every staged event, oldest first.

        Events stay staged until they have been written, so a failed write
        can be retried by calling :meth:`commit` again. Subscriber errors are
        logged and do not stop delivery to the remaining subscribers.

        Returns
        -------
        list[ClaimedEvent]
            The events that were published by this call.

        Raises
        ------
        OSError
            If the JSONL file cannot be written. Nothing is published.
        """
        with self._lock:
            published = list(self._staged)
            lines = [
                json.dumps(event.to_dict(), separators=(",", ":")) for event in published
            ]
            if self._log_path is not None:
                if lines:
                    with self._log_path.open("a", encoding="utf-8") as fh:
                        fh.write("\n".join(lines) + "\n")
            else:
                self._buffer.extend(lines)
            del self._staged[: len(published)]
            self._committed.extend(published)
            subscribers = list(self._subscribers)

        for event in published:
            for callback in subscribers:
                try:
                    callback(event)
                except Exception:
                    logger.exception(
                        "Event subscriber %r failed for link %s", callback, event.link_key
                    )
        return published

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[ClaimedEvent], None]) -> None:
        """Register *callback* to receive every committed event."""
        with self._lock:
            self._subscribers.append(callback)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def events(self) -> list[ClaimedEvent]:
        """Return events committed through this instance, oldest first."""
        with self._lock:
            return list(self._committed)

    def staged_count(self) -> int:
        """Return the number of events waiting for :meth:`commit`."""
        with self._lock:
            return len(self._staged)

    def drain_buffer(self) -> list[str]:
        """Return and clear the in-memory JSON lines.

        Only meaningful when no ``log_path`` was configured.
        """
        with self._lock:
            lines = list(self._buffer)
            self._buffer.clear()
        return lines

    def read_log(self, tail: int | None = None) -> list[ClaimedEvent]:
        """Read committed events back from the log file or buffer.

        Parameters
        ----------
        tail:
            If provided, return only the last *tail* events.

        Returns
        -------
        list[ClaimedEvent]
            Events in chronological order. Unparseable lines are skipped.
        """
        if self._log_path is None or not self._log_path.exists():
            with self._lock:
                lines = list(self._buffer)
        else:
            with self._lock:
                lines = self._log_path.read_text(encoding="utf-8").splitlines()

        parsed: list[ClaimedEvent] = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                parsed.append(ClaimedEvent.from_dict(json.loads(stripped)))
            except (json.JSONDecodeError, KeyError, ValueError):
                logger.warning("Skipping malformed event line: %.80s", stripped)
                continue

        if tail is not None:
            return parsed[-tail:] if tail > 0 else []
        return parsed
