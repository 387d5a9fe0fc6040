"""linkdrop — delegated, link-based asset claims.

A distributor authorizes many one-time claim links off-chain. A receiver
redeems a link by presenting two signatures: the verification identity's
signature over ``(link_key, item_id)`` and the link key's signature over the
receiver's address.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import linkdrop
>>> linkdrop.__version__
'0.1.0'

Quick start
-----------
::

    from linkdrop import (
        ClaimOrchestrator, DistributionGate, InMemoryAssetRegistry, LinkIssuer,
    )

    assets = InMemoryAssetRegistry(asset_reference)
    assets.mint(distributor, 7)
    drop = ClaimOrchestrator(assets, DistributionGate(admin=distributor))
    drop.initialize(asset_reference, issuer.verification_identity, caller=distributor)

    link = issuer.issue(7)
    drop.claim_request(link.claim_request(receiver))
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from linkdrop.errors import (
    AlreadyClaimedError,
    AlreadyInitializedError,
    ClaimError,
    ClaimErrorKind,
    InvalidAuthorizationSignatureError,
    InvalidReceiverSignatureError,
    NotInitializedError,
    PausedError,
    SetupError,
    TransferFailedError,
    UnauthorizedError,
)

# ------------------------------------------------------------------
# Signatures
# ------------------------------------------------------------------
from linkdrop.signing import (
    LinkKeyManager,
    VerificationOutcome,
    VerificationStep,
    verify_claim_signatures,
    verify_link_authorization,
    verify_receiver_binding,
)

# ------------------------------------------------------------------
# Registry, gate, events, assets
# ------------------------------------------------------------------
from linkdrop.assets import AssetRegistry, InMemoryAssetRegistry
from linkdrop.events import ClaimedEvent, ClaimEventLog
from linkdrop.gate import DistributionGate, PauseGate
from linkdrop.registry import ClaimRecord, ClaimRegistry

# ------------------------------------------------------------------
# Redemption and links
# ------------------------------------------------------------------
from linkdrop.links import ClaimLink, LinkIssuer
from linkdrop.models import ClaimReceipt, ClaimRequest, DropConfig
from linkdrop.redemption import ClaimOrchestrator, DistributionSetup

__all__ = [
    "__version__",
    # errors
    "AlreadyClaimedError",
    "AlreadyInitializedError",
    "ClaimError",
    "ClaimErrorKind",
    "InvalidAuthorizationSignatureError",
    "InvalidReceiverSignatureError",
    "NotInitializedError",
    "PausedError",
    "SetupError",
    "TransferFailedError",
    "UnauthorizedError",
    # signatures
    "LinkKeyManager",
    "VerificationOutcome",
    "VerificationStep",
    "verify_claim_signatures",
    "verify_link_authorization",
    "verify_receiver_binding",
    # collaborators
    "AssetRegistry",
    "ClaimEventLog",
    "ClaimRecord",
    "ClaimRegistry",
    "ClaimedEvent",
    "DistributionGate",
    "InMemoryAssetRegistry",
    "PauseGate",
    # redemption
    "ClaimLink",
    "ClaimOrchestrator",
    "ClaimReceipt",
    "ClaimRequest",
    "DistributionSetup",
    "DropConfig",
    "LinkIssuer",
]
