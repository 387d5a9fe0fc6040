"""LinkIssuer — create claim links off-chain.

Issuing a link needs no interaction with the distribution: the issuer
generates a one-time keypair, signs ``(link_key, item_id)`` with the
verification key, and hands the link's private key and the signature to the
recipient, typically as URL query parameters::

    https://claim.example/?pk=0x…&sig=0x…&item=7&asset=0x…

The recipient later uses the link's private key to sign their own address
(:meth:`ClaimLink.sign_receiver`) and submits both signatures.
"""
from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass

from linkdrop.models import ClaimRequest
from linkdrop.signing.addresses import normalize_address
from linkdrop.signing.digest import (
    encode_item_id,
    link_authorization_message,
    receiver_binding_message,
)
from linkdrop.signing.keys import LinkKeyManager

logger = logging.getLogger(__name__)


class LinkFormatError(ValueError):
    """Raised when a claim URL is missing parameters or malformed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid claim link: {reason}")


@dataclass(frozen=True)
class ClaimLink:
    """A single-use claim link.

    Parameters
    ----------
    item_id:
        The item bound to this link.
    link_key:
        Checksum address of the link's one-time key.
    link_private_key:
        Hex private key of the one-time key. Whoever holds it can claim.
    authorization_signature:
        Verification identity's signature over ``(link_key, item_id)``.
    asset_reference:
        Optional collection address, carried for the recipient's benefit.
    """

    item_id: int
    link_key: str
    link_private_key: str
    authorization_signature: bytes
    asset_reference: str | None = None

    def sign_receiver(self, receiver: str) -> bytes:
        """Sign *receiver* with the link key, binding the claim to it."""
        return LinkKeyManager().sign_message_hash(
            self.link_private_key,
            receiver_binding_message(normalize_address(receiver)),
        )

    def claim_request(self, receiver: str) -> ClaimRequest:
        """Build the complete request to redeem this link for *receiver*."""
        return ClaimRequest(
            receiver=receiver,
            item_id=self.item_id,
            link_key=self.link_key,
            authorization_signature=self.authorization_signature,
            receiver_signature=self.sign_receiver(receiver),
        )

    # ------------------------------------------------------------------
    # URL encoding
    # ------------------------------------------------------------------

    def to_url(self, base_url: str) -> str:
        """Append this link's parameters to *base_url* as a query string."""
        params = {
            "pk": self.link_private_key,
            "sig": "0x" + self.authorization_signature.hex(),
            "item": str(self.item_id),
        }
        if self.asset_reference:
            params["asset"] = self.asset_reference
        separator = "&" if urllib.parse.urlparse(base_url).query else "?"
        return base_url + separator + urllib.parse.urlencode(params)

    @classmethod
    def from_url(cls, url: str) -> "ClaimLink":
        """Parse a URL produced by :meth:`to_url`.

        Raises
        ------
        LinkFormatError
            If a required parameter is missing or malformed.
        """
        query = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)

        def first(key: str) -> str | None:
            values = query.get(key)
            return values[0] if values else None

        private_key = first("pk")
        signature = first("sig")
        item = first("item")
        if private_key is None or signature is None or item is None:
            raise LinkFormatError("expected pk, sig and item parameters")

        try:
            item_id = int(item)
            encode_item_id(item_id)
        except ValueError as exc:
            raise LinkFormatError(f"bad item id {item!r}") from exc

        sig_hex = signature[2:] if signature[:2].lower() == "0x" else signature
        try:
            signature_raw = bytes.fromhex(sig_hex)
        except ValueError as exc:
            raise LinkFormatError("sig is not hex") from exc

        try:
            link_key = LinkKeyManager().address_of(private_key)
        except (ValueError, TypeError) as exc:
            raise LinkFormatError("pk is not a valid private key") from exc

        asset = first("asset")
        try:
            asset_reference = normalize_address(asset) if asset else None
        except ValueError as exc:
            raise LinkFormatError(f"bad asset address {asset!r}") from exc

        return cls(
            item_id=item_id,
            link_key=link_key,
            link_private_key=private_key,
            authorization_signature=signature_raw,
            asset_reference=asset_reference,
        )


class LinkIssuer:
    """Issues claim links signed by the verification key.

    Parameters
    ----------
    verification_private_key:
        Private key of the distribution's verification identity.
    asset_reference:
        Optional collection address embedded in issued links.
    """

    def __init__(
        self,
        verification_private_key: str | bytes,
        asset_reference: str | None = None,
    ) -> None:
        self._keys = LinkKeyManager()
        self._verification_private_key = verification_private_key
        self._verification_identity = self._keys.address_of(verification_private_key)
        self._asset_reference = (
            normalize_address(asset_reference) if asset_reference else None
        )

    @property
    def verification_identity(self) -> str:
        """Address links issued here are verified against."""
        return self._verification_identity

    def issue(self, item_id: int) -> ClaimLink:
        """Create a link for *item_id* with a fresh one-time key."""
        encode_item_id(item_id)
        link_private_key, link_key = self._keys.generate_keypair()
        signature = self._keys.sign_message_hash(
            self._verification_private_key,
            link_authorization_message(link_key, item_id),
        )
        logger.debug("Issued link %s for item %d", link_key, item_id)
        return ClaimLink(
            item_id=item_id,
            link_key=link_key,
            link_private_key=link_private_key,
            authorization_signature=signature,
            asset_reference=self._asset_reference,
        )

    def issue_many(self, item_ids: list[int]) -> list[ClaimLink]:
        """Issue one link per item id, in order."""
        return [self.issue(item_id) for item_id in item_ids]
