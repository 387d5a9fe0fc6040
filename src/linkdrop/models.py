"""Pydantic models for claim requests, receipts and distribution config."""
from __future__ import annotations

import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from linkdrop.signing.addresses import normalize_address
from linkdrop.signing.digest import encode_item_id
from linkdrop.signing.verifier import signature_bytes


def _address(value: object) -> str:
    if not isinstance(value, (str, bytes)):
        raise ValueError("address must be a hex string")
    return normalize_address(value)


def _signature_hex(value: object) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        text = value.strip()
        return text if text[:2].lower() == "0x" else "0x" + text
    raise ValueError("signature must be bytes or a hex string")


class ClaimRequest(BaseModel):
    """Everything a receiver submits to redeem a link.

    Addresses are normalized to checksum form. Signatures are kept as
    ``0x`` hex text and are *not* validated here: a malformed signature must
    surface as the matching claim error, not as a request validation error.
    """

    receiver: str
    item_id: int
    link_key: str
    authorization_signature: str
    receiver_signature: str

    @field_validator("receiver", "link_key", mode="before")
    @classmethod
    def _check_address(cls, value: object) -> str:
        return _address(value)

    @field_validator("item_id", mode="before")
    @classmethod
    def _reject_bool_item_id(cls, value: object) -> object:
        if isinstance(value, bool):
            raise ValueError("item_id must be an integer, not a bool")
        return value

    @field_validator("item_id")
    @classmethod
    def _check_item_id(cls, value: int) -> int:
        encode_item_id(value)
        return value

    @field_validator("authorization_signature", "receiver_signature", mode="before")
    @classmethod
    def _check_signature(cls, value: object) -> str:
        return _signature_hex(value)

    def signatures_well_formed(self) -> bool:
        """True if both signatures decode to 65 bytes."""
        return (
            signature_bytes(self.authorization_signature) is not None
            and signature_bytes(self.receiver_signature) is not None
        )


class ClaimReceipt(BaseModel):
    """Confirmation returned by a successful claim."""

    link_key: str
    item_id: int
    receiver: str
    timestamp: datetime.datetime


class DropConfig(BaseModel):
    """Persistent configuration of one distribution.

    Parameters
    ----------
    distributor:
        Address the items are transferred from (the initializer).
    verification_identity:
        Address whose key authorizes links.
    asset_reference:
        Address of the asset collection.
    paused:
        Whether claims are currently paused.
    events_path:
        Optional JSONL file for claim events.
    """

    distributor: str
    verification_identity: str
    asset_reference: str
    paused: bool = False
    events_path: Optional[str] = None

    @field_validator("distributor", "verification_identity", "asset_reference", mode="before")
    @classmethod
    def _check_address(cls, value: object) -> str:
        return _address(value)


__all__ = ["ClaimReceipt", "ClaimRequest", "DropConfig"]
