"""LinkKeyManager — secp256k1 key generation and EIP-191 signing.

A thin wrapper around ``eth_account``: generate a keypair, derive an
address, sign a 32-byte message hash the way off-chain link generators do.
Private keys are handled as ``0x``-prefixed hex strings so callers can store
or transmit them without depending on this module's types.
"""
from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct


def _as_hex_key(private_key: str | bytes) -> str:
    if isinstance(private_key, (bytes, bytearray)):
        return "0x" + bytes(private_key).hex()
    return private_key if private_key.startswith("0x") else "0x" + private_key


class LinkKeyManager:
    """secp256k1 key management: generate, derive, sign.

    Example
    -------
    ::

        manager = LinkKeyManager()
        private_key, address = manager.generate_keypair()
        signature = manager.sign_message_hash(private_key, message_hash)
    """

    def generate_keypair(self) -> tuple[str, str]:
        """Generate a fresh keypair.

        Returns
        -------
        tuple[str, str]
            ``(private_key_hex, checksum_address)``.
        """
        account = Account.create()
        return _as_hex_key(bytes(account.key)), account.address

    def address_of(self, private_key: str | bytes) -> str:
        """Return the checksum address controlled by *private_key*."""
        return Account.from_key(_as_hex_key(private_key)).address

    def sign_message_hash(self, private_key: str | bytes, message_hash: bytes) -> bytes:
        """Sign a 32-byte message hash with the signed-message prefix.

        Parameters
        ----------
        private_key:
            Hex string or 32 raw bytes.
        message_hash:
            The 32-byte hash produced by :mod:`linkdrop.signing.digest`.

        Returns
        -------
        bytes
            The 65-byte ``r ‖ s ‖ v`` signature with ``v`` in ``{27, 28}``.
        """
        if len(message_hash) != 32:
            raise ValueError(
                f"message_hash must be 32 bytes, got {len(message_hash)}."
            )
        signed = Account.sign_message(
            encode_defunct(primitive=bytes(message_hash)),
            private_key=_as_hex_key(private_key),
        )
        return bytes(signed.signature)


__all__ = ["LinkKeyManager"]
