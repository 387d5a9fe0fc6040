"""Asset registry collaborator and an in-memory implementation."""
from __future__ import annotations

from linkdrop.assets.registry import (
    AssetRegistry,
    AssetTransferError,
    InMemoryAssetRegistry,
    NotOwnerError,
    ReceiveHook,
    UnknownItemError,
)

__all__ = [
    "AssetRegistry",
    "AssetTransferError",
    "InMemoryAssetRegistry",
    "NotOwnerError",
    "ReceiveHook",
    "UnknownItemError",
]
