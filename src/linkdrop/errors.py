"""Exception hierarchy for link claims.

Every claim rejection is a :class:`ClaimError` carrying a
:class:`ClaimErrorKind`, so off-chain tooling can tell "link already used"
from "bad signature" from "paused" without parsing messages.
"""
from __future__ import annotations

from enum import Enum


class ClaimErrorKind(Enum):
    """Machine-readable reason a claim was rejected."""

    PAUSED = "paused"
    ALREADY_CLAIMED = "already_claimed"
    INVALID_AUTHORIZATION_SIGNATURE = "invalid_authorization_signature"
    INVALID_RECEIVER_SIGNATURE = "invalid_receiver_signature"
    TRANSFER_FAILED = "transfer_failed"


# ---------------------------------------------------------------------------
# Claim errors
# ---------------------------------------------------------------------------


class ClaimError(Exception):
    """Base class for all claim rejections."""

    kind: ClaimErrorKind

    def __init__(self, message: str, link_key: str | None = None) -> None:
        self.link_key = link_key
        super().__init__(message)


class PausedError(ClaimError):
    """Raised when claims are paused by the distribution gate."""

    kind = ClaimErrorKind.PAUSED

    def __init__(self, link_key: str | None = None) -> None:
        super().__init__("Claims are paused.", link_key=link_key)


class AlreadyClaimedError(ClaimError):
    """Raised when a link key already has a recorded receiver."""

    kind = ClaimErrorKind.ALREADY_CLAIMED

    def __init__(self, link_key: str, receiver: str | None = None) -> None:
        self.receiver = receiver
        super().__init__(
            f"Link {link_key} has already been claimed"
            + (f" by {receiver}." if receiver else "."),
            link_key=link_key,
        )


class InvalidAuthorizationSignatureError(ClaimError):
    """Raised when the authorization signature does not recover to the verifier."""

    kind = ClaimErrorKind.INVALID_AUTHORIZATION_SIGNATURE

    def __init__(self, link_key: str, recovered: str | None = None) -> None:
        self.recovered = recovered
        super().__init__(
            f"Authorization signature for link {link_key} was not made by "
            f"the verification identity (recovered {recovered or 'nothing'}).",
            link_key=link_key,
        )


class InvalidReceiverSignatureError(ClaimError):
    """Raised when the receiver signature does not recover to the link key."""

    kind = ClaimErrorKind.INVALID_RECEIVER_SIGNATURE

    def __init__(self, link_key: str, recovered: str | None = None) -> None:
        self.recovered = recovered
        super().__init__(
            f"Receiver signature was not made by link key {link_key} "
            f"(recovered {recovered or 'nothing'}).",
            link_key=link_key,
        )


class TransferFailedError(ClaimError):
    """Raised when the asset registry rejects the transfer."""

    kind = ClaimErrorKind.TRANSFER_FAILED

    def __init__(self, link_key: str, item_id: int, reason: str) -> None:
        self.item_id = item_id
        self.reason = reason
        super().__init__(
            f"Transfer of item {item_id} for link {link_key} failed: {reason}",
            link_key=link_key,
        )


# ---------------------------------------------------------------------------
# Setup and administration
# ---------------------------------------------------------------------------


class SetupError(Exception):
    """Base class for initialization errors."""


class AlreadyInitializedError(SetupError):
    """Raised when ``initialize()`` is called a second time."""

    def __init__(self) -> None:
        super().__init__("The distribution has already been initialized.")


class NotInitializedError(SetupError):
    """Raised when the distribution is used before ``initialize()``."""

    def __init__(self) -> None:
        super().__init__(
            "The distribution has not been initialized. Call initialize() first."
        )


class UnauthorizedError(PermissionError):
    """Raised when a non-admin identity tries to change the gate."""

    def __init__(self, caller: str, action: str) -> None:
        self.caller = caller
        self.action = action
        super().__init__(f"{caller} is not allowed to {action}.")


__all__ = [
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
]
