"""Message digests signed by distributors and link keys.

Both signatures in a claim are EIP-191 ``personal_sign`` signatures over a
32-byte keccak256 message hash:

* link authorization: ``keccak256(address ‖ uint256(item_id))``
* receiver binding:   ``keccak256(address)``

The packed encodings match Solidity's ``abi.encodePacked`` so that digests
are bit-exact with ``eth_account`` / ``ethers`` link generators.
"""
from __future__ import annotations

from eth_utils import keccak, to_canonical_address

SIGNED_MESSAGE_PREFIX: bytes = b"\x19Ethereum Signed Message:\n32"

MAX_ITEM_ID: int = 2**256 - 1


def encode_item_id(item_id: int) -> bytes:
    """Return *item_id* as a 32-byte big-endian ``uint256``.

    Raises
    ------
    ValueError
        If *item_id* is not an int in ``[0, 2**256)``.
    """
    if isinstance(item_id, bool) or not isinstance(item_id, int):
        raise ValueError(f"item_id must be an int, got {type(item_id).__name__}")
    if item_id < 0 or item_id > MAX_ITEM_ID:
        raise ValueError(f"item_id {item_id} is outside the uint256 range.")
    return item_id.to_bytes(32, "big")


def link_authorization_message(link_key: str, item_id: int) -> bytes:
    """Hash of the ``(link_key, item_id)`` pair signed by the verifier."""
    return keccak(to_canonical_address(link_key) + encode_item_id(item_id))


def receiver_binding_message(receiver: str) -> bytes:
    """Hash of the receiver address signed by the link key."""
    return keccak(to_canonical_address(receiver))


def signed_message_digest(message_hash: bytes) -> bytes:
    """Apply the ``"\\x19Ethereum Signed Message:\\n32"`` prefix and hash.

    Parameters
    ----------
    message_hash:
        The 32-byte message hash being signed.

    Returns
    -------
    bytes
        The 32-byte digest the ECDSA signature is actually computed over.
    """
    if len(message_hash) != 32:
        raise ValueError(
            f"message_hash must be 32 bytes, got {len(message_hash)}."
        )
    return keccak(SIGNED_MESSAGE_PREFIX + bytes(message_hash))


def link_authorization_digest(link_key: str, item_id: int) -> bytes:
    """Digest recovered against the verification identity."""
    return signed_message_digest(link_authorization_message(link_key, item_id))


def receiver_binding_digest(receiver: str) -> bytes:
    """Digest recovered against the link key."""
    return signed_message_digest(receiver_binding_message(receiver))


__all__ = [
    "MAX_ITEM_ID",
    "SIGNED_MESSAGE_PREFIX",
    "encode_item_id",
    "link_authorization_digest",
    "link_authorization_message",
    "receiver_binding_digest",
    "receiver_binding_message",
    "signed_message_digest",
]
