"""ClaimOrchestrator — redeem a claim link as one all-or-nothing step.

A claim is accepted only if, in this order:

1. the distribution gate is not paused,
2. the link key has not been claimed,
3. the authorization signature recovers to the verification identity,
4. the receiver signature recovers to the link key.

The effects then run strictly in this order:

a. the claim is recorded in the :class:`~linkdrop.registry.ClaimRegistry`,
b. the asset registry transfers the item from the distributor,
c. a :class:`~linkdrop.events.ClaimedEvent` is staged.

The registry write happens before the external transfer, so a transfer
that calls back into :meth:`ClaimOrchestrator.claim` for the same link sees
it as claimed and is rejected. The write and the transfer are still one
unit: if the transfer raises, the registry and event log are rolled back to
their state before step (a), nested claims made during the transfer
included, and :class:`~linkdrop.errors.TransferFailedError` is raised.

Staged events are committed once the outermost claim returns. A claim that
has been recorded and transferred always returns its receipt: if the event
log cannot be written the events stay staged and the failure is logged.
"""
from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from linkdrop.assets.registry import AssetRegistry
from linkdrop.errors import (
    AlreadyClaimedError,
    AlreadyInitializedError,
    ClaimError,
    InvalidAuthorizationSignatureError,
    InvalidReceiverSignatureError,
    NotInitializedError,
    PausedError,
    TransferFailedError,
)
from linkdrop.events.log import ClaimedEvent, ClaimEventLog
from linkdrop.gate.pause import PauseGate
from linkdrop.models import ClaimReceipt, ClaimRequest
from linkdrop.registry.claim_registry import ClaimRegistry
from linkdrop.signing import verifier as _verifier
from linkdrop.signing.addresses import normalize_address, same_address
from linkdrop.signing.digest import encode_item_id
from linkdrop.signing.verifier import (
    VerificationStep,
    first_failure,
    verify_claim_signatures,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class DistributionSetup:
    """Identities fixed by :meth:`ClaimOrchestrator.initialize`.

    Parameters
    ----------
    distributor:
        Address items are transferred from.
    verification_identity:
        Address whose key authorizes links.
    asset_reference:
        Address of the asset collection.
    """

    distributor: str
    verification_identity: str
    asset_reference: str


class ClaimOrchestrator:
    """Verify and redeem claim links.

    Parameters
    ----------
    assets:
        The asset registry that owns and moves items.
    gate:
        The pause switch consulted before every claim.
    events:
        Event log for successful claims. A fresh in-memory log by default.
    registry:
        Claim registry. A fresh in-memory registry by default.
    clock:
        Returns the timestamp recorded for each claim. UTC now by default.

    Example
    -------
    ::

        assets = InMemoryAssetRegistry(asset_reference)
        gate = DistributionGate(admin=distributor)
        drop = ClaimOrchestrator(assets, gate)
        drop.initialize(asset_reference, verifier, caller=distributor)
        drop.claim(receiver, 7, link_key, authorization_sig, receiver_sig)
    """

    def __init__(
        self,
        assets: AssetRegistry,
        gate: PauseGate,
        events: ClaimEventLog | None = None,
        registry: ClaimRegistry | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._assets = assets
        self._gate = gate
        self._events = events if events is not None else ClaimEventLog()
        self._registry = registry if registry is not None else ClaimRegistry()
        self._clock = clock or _utc_now
        self._setup: DistributionSetup | None = None
        self._depth = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize(
        self,
        asset_reference: str,
        verification_identity: str,
        caller: str,
    ) -> DistributionSetup:
        """Fix the distribution's identities. May only be called once.

        Parameters
        ----------
        asset_reference:
            The collection items are claimed from; must be the collection
            served by the injected asset registry.
        verification_identity:
            The address whose signatures authorize links.
        caller:
            Becomes the distributor.

        Raises
        ------
        AlreadyInitializedError
            On a second call.
        ValueError
            If an address is invalid or *asset_reference* does not match the
            asset registry.
        """
        setup = DistributionSetup(
            distributor=normalize_address(caller),
            verification_identity=normalize_address(verification_identity),
            asset_reference=normalize_address(asset_reference),
        )
        with self._lock:
            if self._setup is not None:
                raise AlreadyInitializedError()
            if not same_address(self._assets.asset_reference, setup.asset_reference):
                raise ValueError(
                    f"Asset registry serves {self._assets.asset_reference}, "
                    f"not {setup.asset_reference}."
                )
            self._setup = setup
        logger.info(
            "Distribution initialized: distributor=%s verifier=%s asset=%s",
            setup.distributor,
            setup.verification_identity,
            setup.asset_reference,
        )
        return setup

    @property
    def initialized(self) -> bool:
        """True once :meth:`initialize` has run."""
        return self._setup is not None

    @property
    def setup(self) -> DistributionSetup:
        """The fixed identities.

        Raises
        ------
        NotInitializedError
            Before :meth:`initialize`.
        """
        if self._setup is None:
            raise NotInitializedError()
        return self._setup

    @property
    def distributor(self) -> str:
        return self.setup.distributor

    @property
    def verification_identity(self) -> str:
        return self.setup.verification_identity

    @property
    def asset_reference(self) -> str:
        return self.setup.asset_reference

    @property
    def registry(self) -> ClaimRegistry:
        return self._registry

    @property
    def events(self) -> ClaimEventLog:
        return self._events

    # ------------------------------------------------------------------
    # Read-only checks
    # ------------------------------------------------------------------

    def verify_link_authorization(
        self, link_key: str, item_id: int, signature: bytes | str
    ) -> bool:
        """True if *signature* is the verification identity's authorization."""
        return _verifier.verify_link_authorization(
            self.verification_identity,
            normalize_address(link_key),
            item_id,
            signature,
        )

    def verify_receiver_binding(
        self, link_key: str, receiver: str, signature: bytes | str
    ) -> bool:
        """True if *signature* is *link_key*'s signature over *receiver*."""
        return _verifier.verify_receiver_binding(
            normalize_address(link_key), normalize_address(receiver), signature
        )

    def is_claimed(self, link_key: str) -> bool:
        return self._registry.is_claimed(link_key)

    def claimed_receiver(self, link_key: str) -> str | None:
        return self._registry.claimed_receiver(link_key)

    def check_claim(
        self,
        receiver: str,
        item_id: int,
        link_key: str,
        authorization_signature: bytes | str,
        receiver_signature: bytes | str,
    ) -> None:
        """Raise the error :meth:`claim` would raise before transferring.

        Runs every precondition without mutating anything. Returning
        normally does not guarantee the transfer itself will succeed.
        """
        receiver = normalize_address(receiver)
        link_key = normalize_address(link_key)
        encode_item_id(item_id)
        with self._lock:
            self._check_preconditions(
                self.setup,
                receiver,
                item_id,
                link_key,
                authorization_signature,
                receiver_signature,
            )

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    def claim(
        self,
        receiver: str,
        item_id: int,
        link_key: str,
        authorization_signature: bytes | str,
        receiver_signature: bytes | str,
    ) -> ClaimReceipt:
        """Redeem *link_key* and transfer *item_id* to *receiver*.

        Parameters
        ----------
        receiver:
            Address receiving the item.
        item_id:
            The item bound to the link.
        link_key:
            The link's one-time key address.
        authorization_signature:
            Verification identity's signature over ``(link_key, item_id)``.
        receiver_signature:
            Link key's signature over ``receiver``.

        Returns
        -------
        ClaimReceipt
            Confirmation of the redemption.

        Raises
        ------
        PausedError, AlreadyClaimedError, InvalidAuthorizationSignatureError,
        InvalidReceiverSignatureError, TransferFailedError
            The specific reason the claim was rejected. Nothing is recorded.
        NotInitializedError
            Before :meth:`initialize`.
        ValueError
            If an address or the item id is malformed.
        """
        receiver = normalize_address(receiver)
        link_key = normalize_address(link_key)
        encode_item_id(item_id)

        with self._lock:
            setup = self.setup
            self._check_preconditions(
                setup,
                receiver,
                item_id,
                link_key,
                authorization_signature,
                receiver_signature,
            )

            registry_mark = self._registry.checkpoint()
            events_mark = self._events.checkpoint()
            timestamp = self._clock()
            self._depth += 1
            try:
                self._registry.record_claim(link_key, receiver, claimed_at=timestamp)
                try:
                    self._assets.transfer(setup.distributor, receiver, item_id)
                except Exception as exc:
                    undone = self._registry.rollback_to(registry_mark)
                    self._events.rollback_to(events_mark)
                    logger.error(
                        "Transfer of item %d for link %s failed; rolled back %d claim(s)",
                        item_id,
                        link_key,
                        len(undone),
                        exc_info=True,
                    )
                    raise TransferFailedError(
                        link_key, item_id, str(exc) or type(exc).__name__
                    ) from exc
                self._events.append(ClaimedEvent(link_key, item_id, receiver, timestamp))
            finally:
                self._depth -= 1

            if self._depth == 0:
                try:
                    self._events.commit()
                except OSError:
                    # The claim stands; events stay staged for the next commit.
                    logger.error(
                        "Could not publish %d claim event(s); kept staged",
                        self._events.staged_count(),
                        exc_info=True,
                    )

        logger.info("Link %s claimed: item %d sent to %s", link_key, item_id, receiver)
        return ClaimReceipt(
            link_key=link_key, item_id=item_id, receiver=receiver, timestamp=timestamp
        )

    def claim_request(self, request: ClaimRequest) -> ClaimReceipt:
        """Redeem a validated :class:`~linkdrop.models.ClaimRequest`."""
        return self.claim(
            receiver=request.receiver,
            item_id=request.item_id,
            link_key=request.link_key,
            authorization_signature=request.authorization_signature,
            receiver_signature=request.receiver_signature,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_preconditions(
        self,
        setup: DistributionSetup,
        receiver: str,
        item_id: int,
        link_key: str,
        authorization_signature: bytes | str,
        receiver_signature: bytes | str,
    ) -> None:
        try:
            if self._gate.is_paused():
                raise PausedError(link_key)

            existing = self._registry.claimed_receiver(link_key)
            if existing is not None:
                raise AlreadyClaimedError(link_key, existing)

            failure = first_failure(
                verify_claim_signatures(
                    setup.verification_identity,
                    link_key,
                    item_id,
                    receiver,
                    authorization_signature,
                    receiver_signature,
                )
            )
            if failure is None:
                return
            if failure.step is VerificationStep.LINK_AUTHORIZATION:
                raise InvalidAuthorizationSignatureError(link_key, failure.recovered)
            raise InvalidReceiverSignatureError(link_key, failure.recovered)
        except ClaimError as exc:
            logger.warning("Claim for link %s rejected (%s)", link_key, exc.kind.value)
            raise
