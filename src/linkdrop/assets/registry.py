"""Asset registry collaborator.

The claim orchestrator only needs :class:`AssetRegistry`: an
``asset_reference`` naming the collection and a ``transfer`` that either
moves the item or raises.

:class:`InMemoryAssetRegistry` is an ERC-721-like implementation used by the
CLI and the tests. Receivers may register a hook that runs after ownership
changes (the equivalent of ``onERC721Received``); this is the path through
which a transfer can call back into ``claim``. If a hook raises, the whole
transfer is undone, including any nested transfers the hook made, and the
exception propagates to the caller.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol, runtime_checkable

from linkdrop.signing.addresses import normalize_address
from linkdrop.signing.digest import encode_item_id

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[str, str, int], None]
"""``hook(sender, receiver, item_id)`` called after ownership changes."""


@runtime_checkable
class AssetRegistry(Protocol):
    """The single capability the orchestrator consumes."""

    asset_reference: str

    def transfer(self, sender: str, receiver: str, item_id: int) -> None:
        ...


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AssetTransferError(Exception):
    """Base class for transfers the registry refuses."""


class UnknownItemError(AssetTransferError):
    """Raised when an item has never been minted."""

    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        super().__init__(f"Item {item_id} does not exist.")


class NotOwnerError(AssetTransferError):
    """Raised when the sender does not own the item."""

    def __init__(self, item_id: int, sender: str, owner: str) -> None:
        self.item_id = item_id
        self.sender = sender
        self.owner = owner
        super().__init__(f"Item {item_id} is owned by {owner}, not {sender}.")


# ---------------------------------------------------------------------------
# In-memory registry
# ---------------------------------------------------------------------------


class InMemoryAssetRegistry:
    """Non-fungible items tracked in a dict.

    Thread-safe; the lock is re-entrant so receive hooks may transfer again.

    Parameters
    ----------
    asset_reference:
        Address identifying this collection.
    """

    def __init__(self, asset_reference: str) -> None:
        self.asset_reference = normalize_address(asset_reference)
        self._owners: dict[int, str] = {}
        self._hooks: dict[str, ReceiveHook] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def mint(self, owner: str, item_id: int) -> None:
        """Create *item_id* owned by *owner*.

        Raises
        ------
        ValueError
            If the item already exists or the id is not a ``uint256``.
        """
        encode_item_id(item_id)
        owner = normalize_address(owner)
        with self._lock:
            if item_id in self._owners:
                raise ValueError(f"Item {item_id} already exists.")
            self._owners[item_id] = owner
        logger.debug("Minted item %d to %s", item_id, owner)

    def on_receive(self, address: str, hook: ReceiveHook | None) -> None:
        """Install (or with None, remove) the receive hook for *address*."""
        address = normalize_address(address)
        with self._lock:
            if hook is None:
                self._hooks.pop(address, None)
            else:
                self._hooks[address] = hook

    def transfer(self, sender: str, receiver: str, item_id: int) -> None:
        """Move *item_id* from *sender* to *receiver*.

        Raises
        ------
        UnknownItemError
            If the item was never minted.
        NotOwnerError
            If *sender* does not currently own the item.
        Exception
            Whatever the receiver's hook raises; the transfer is undone first.
        """
        sender = normalize_address(sender)
        receiver = normalize_address(receiver)
        with self._lock:
            owner = self._owners.get(item_id)
            if owner is None:
                raise UnknownItemError(item_id)
            if owner != sender:
                raise NotOwnerError(item_id, sender, owner)

            snapshot = dict(self._owners)
            self._owners[item_id] = receiver
            hook = self._hooks.get(receiver)
            if hook is not None:
                try:
                    hook(sender, receiver, item_id)
                except Exception:
                    self._owners = snapshot
                    logger.info(
                        "Receive hook for %s rejected item %d; transfer undone",
                        receiver,
                        item_id,
                    )
                    raise
        logger.debug("Transferred item %d from %s to %s", item_id, sender, receiver)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def owner_of(self, item_id: int) -> str:
        """Return the owner of *item_id*.

        Raises
        ------
        UnknownItemError
            If the item was never minted.
        """
        with self._lock:
            owner = self._owners.get(item_id)
        if owner is None:
            raise UnknownItemError(item_id)
        return owner

    def items_of(self, owner: str) -> list[int]:
        """Return the sorted item ids held by *owner*."""
        owner = normalize_address(owner)
        with self._lock:
            return sorted(i for i, o in self._owners.items() if o == owner)

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Serialize the collection; item ids are decimal strings."""
        with self._lock:
            return {
                "asset_reference": self.asset_reference,
                "owners": {str(i): o for i, o in sorted(self._owners.items())},
            }

    def restore(self, owners: dict[str, str]) -> None:
        """Load ownership previously produced by :meth:`to_dict`."""
        parsed = {int(i): normalize_address(o) for i, o in owners.items()}
        with self._lock:
            self._owners.update(parsed)
