"""Signature recovery and the two-step claim verification pipeline.

A claim carries two independent signatures:

``LINK_AUTHORIZATION``
    The verification identity signed ``(link_key, item_id)`` when the link
    was issued. Proves the distributor created the link.
``RECEIVER_BINDING``
    The link key signed the receiver address at redemption time. Proves the
    redeemer holds the link's one-time secret.

Each step is a pure function returning ``bool``. :func:`verify_claim_signatures`
combines them into an ordered list of :class:`VerificationOutcome` values,
stopping at the first invalid step.

Recovery never raises for bad signature content. Truncated, non-hex,
out-of-range, high-``s`` or otherwise unrecoverable signatures yield
``None`` from :func:`recover_signer`, which then fails the equality check.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from eth_keys import keys
from eth_keys.constants import SECPK1_N
from eth_keys.exceptions import BadSignature, ValidationError

from linkdrop.signing.addresses import same_address
from linkdrop.signing.digest import link_authorization_digest, receiver_binding_digest

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH: int = 65
_HALF_N: int = SECPK1_N // 2


class VerificationStep(Enum):
    """Which of the two claim signatures an outcome refers to."""

    LINK_AUTHORIZATION = "link_authorization"
    RECEIVER_BINDING = "receiver_binding"


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of one verification step.

    Parameters
    ----------
    step:
        The signature that was checked.
    valid:
        True when the recovered signer equals the expected identity.
    recovered:
        The recovered checksum address, or None if recovery failed.
    """

    step: VerificationStep
    valid: bool
    recovered: str | None = None


# ------------------------------------------------------------------
# Recovery
# ------------------------------------------------------------------


def signature_bytes(signature: bytes | str) -> bytes | None:
    """Decode a 65-byte signature from bytes or ``0x`` hex; None if malformed."""
    if isinstance(signature, str):
        text = signature.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            return None
    elif isinstance(signature, (bytes, bytearray)):
        raw = bytes(signature)
    else:
        return None
    if len(raw) != SIGNATURE_LENGTH:
        return None
    return raw


def recover_signer(digest: bytes, signature: bytes | str) -> str | None:
    """Recover the checksum address that signed *digest*.

    Parameters
    ----------
    digest:
        The 32-byte prefixed message digest.
    signature:
        ``r ‖ s ‖ v`` with ``v`` in ``{0, 1, 27, 28}``.

    Returns
    -------
    str | None
        The signer's address, or None when the signature is malformed,
        malleable (high ``s``) or does not recover to a public key.
    """
    raw = signature_bytes(signature)
    if raw is None:
        logger.debug("Rejecting signature: not %d bytes of hex.", SIGNATURE_LENGTH)
        return None

    r = int.from_bytes(raw[0:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        logger.debug("Rejecting signature: invalid recovery id %d.", raw[64])
        return None
    if not (0 < r < SECPK1_N) or not (0 < s <= _HALF_N):
        logger.debug("Rejecting signature: r/s out of range or high-s.")
        return None

    try:
        public_key = keys.Signature(vrs=(v, r, s)).recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError, ValueError) as exc:
        logger.debug("Signature recovery failed: %s", exc)
        return None
    return public_key.to_checksum_address()


# ------------------------------------------------------------------
# Verification steps
# ------------------------------------------------------------------


def check_link_authorization(
    verification_identity: str,
    link_key: str,
    item_id: int,
    signature: bytes | str,
) -> VerificationOutcome:
    """Run the ``LINK_AUTHORIZATION`` step and return its outcome."""
    recovered = recover_signer(link_authorization_digest(link_key, item_id), signature)
    return VerificationOutcome(
        step=VerificationStep.LINK_AUTHORIZATION,
        valid=same_address(recovered, verification_identity),
        recovered=recovered,
    )


def check_receiver_binding(
    link_key: str,
    receiver: str,
    signature: bytes | str,
) -> VerificationOutcome:
    """Run the ``RECEIVER_BINDING`` step and return its outcome."""
    recovered = recover_signer(receiver_binding_digest(receiver), signature)
    return VerificationOutcome(
        step=VerificationStep.RECEIVER_BINDING,
        valid=same_address(recovered, link_key),
        recovered=recovered,
    )


def verify_link_authorization(
    verification_identity: str,
    link_key: str,
    item_id: int,
    signature: bytes | str,
) -> bool:
    """Return True if *signature* authorizes ``(link_key, item_id)``.

    Parameters
    ----------
    verification_identity:
        The address whose key authorizes links.
    link_key:
        The link's one-time key address.
    item_id:
        The item bound to the link.
    signature:
        The authorization signature presented with the claim.
    """
    return check_link_authorization(verification_identity, link_key, item_id, signature).valid


def verify_receiver_binding(
    link_key: str,
    receiver: str,
    signature: bytes | str,
) -> bool:
    """Return True if *signature* is the link key's signature over *receiver*."""
    return check_receiver_binding(link_key, receiver, signature).valid


# ------------------------------------------------------------------
# Combinator
# ------------------------------------------------------------------


def verify_claim_signatures(
    verification_identity: str,
    link_key: str,
    item_id: int,
    receiver: str,
    authorization_signature: bytes | str,
    receiver_signature: bytes | str,
) -> list[VerificationOutcome]:
    """Run both steps in order, stopping at the first invalid one.

    Returns
    -------
    list[VerificationOutcome]
        One outcome per step that ran. The list has two valid entries when
        the whole signature chain checks out.
    """
    outcomes = [
        check_link_authorization(
            verification_identity, link_key, item_id, authorization_signature
        )
    ]
    if not outcomes[-1].valid:
        return outcomes
    outcomes.append(check_receiver_binding(link_key, receiver, receiver_signature))
    return outcomes


def first_failure(outcomes: list[VerificationOutcome]) -> VerificationOutcome | None:
    """Return the first invalid outcome, or None if all passed."""
    for outcome in outcomes:
        if not outcome.valid:
            return outcome
    return None


__all__ = [
    "SIGNATURE_LENGTH",
    "VerificationOutcome",
    "VerificationStep",
    "check_link_authorization",
    "check_receiver_binding",
    "first_failure",
    "recover_signer",
    "signature_bytes",
    "verify_claim_signatures",
    "verify_link_authorization",
    "verify_receiver_binding",
]
