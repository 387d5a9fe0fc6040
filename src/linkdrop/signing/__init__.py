"""Claim signature digests, recovery and verification.

Quick start
-----------
::

    from linkdrop.signing import (
        LinkKeyManager,
        link_authorization_message,
        verify_link_authorization,
    )

    keys = LinkKeyManager()
    verifier_key, verifier = keys.generate_keypair()
    link_private_key, link_key = keys.generate_keypair()

    signature = keys.sign_message_hash(
        verifier_key, link_authorization_message(link_key, 7)
    )
    print(verify_link_authorization(verifier, link_key, 7, signature))  # True
"""
from __future__ import annotations

from linkdrop.signing.addresses import normalize_address, same_address
from linkdrop.signing.digest import (
    link_authorization_digest,
    link_authorization_message,
    receiver_binding_digest,
    receiver_binding_message,
    signed_message_digest,
)
from linkdrop.signing.keys import LinkKeyManager
from linkdrop.signing.verifier import (
    VerificationOutcome,
    VerificationStep,
    first_failure,
    recover_signer,
    verify_claim_signatures,
    verify_link_authorization,
    verify_receiver_binding,
)

__all__ = [
    "LinkKeyManager",
    "VerificationOutcome",
    "VerificationStep",
    "first_failure",
    "link_authorization_digest",
    "link_authorization_message",
    "normalize_address",
    "receiver_binding_digest",
    "receiver_binding_message",
    "recover_signer",
    "same_address",
    "signed_message_digest",
    "verify_claim_signatures",
    "verify_link_authorization",
    "verify_receiver_binding",
]
