"""Tests for linkdrop.redemption.orchestrator — ClaimOrchestrator."""
from __future__ import annotations

import logging
import threading
from pathlib import Path

import pytest

from linkdrop.assets.registry import InMemoryAssetRegistry
from linkdrop.errors import (
    AlreadyClaimedError,
    AlreadyInitializedError,
    ClaimError,
    ClaimErrorKind,
    InvalidAuthorizationSignatureError,
    InvalidReceiverSignatureError,
    NotInitializedError,
    PausedError,
    TransferFailedError,
)
from linkdrop.events.log import ClaimedEvent, ClaimEventLog
from linkdrop.gate.pause import DistributionGate
from linkdrop.links.issuer import ClaimLink
from linkdrop.models import ClaimReceipt
from linkdrop.redemption.orchestrator import ClaimOrchestrator
from linkdrop.signing.digest import link_authorization_message, receiver_binding_message
from linkdrop.signing.keys import LinkKeyManager


def _claim(drop, link: ClaimLink, receiver: str) -> ClaimReceipt:
    return drop.orchestrator.claim(
        receiver,
        link.item_id,
        link.link_key,
        link.authorization_signature,
        link.sign_receiver(receiver),
    )


class RecordingAssets(InMemoryAssetRegistry):
    """Asset registry that records transfer calls and the claim state seen."""

    def __init__(self, asset_reference: str) -> None:
        super().__init__(asset_reference)
        self.calls: list[tuple[str, str, int]] = []
        self.observed: list[bool] = []
        self.orchestrator: ClaimOrchestrator | None = None
        self.watch_link: str | None = None
        self.fail_with: Exception | None = None

    def transfer(self, sender: str, receiver: str, item_id: int) -> None:
        self.calls.append((sender, receiver, item_id))
        if self.orchestrator is not None and self.watch_link is not None:
            self.observed.append(self.orchestrator.is_claimed(self.watch_link))
        if self.fail_with is not None:
            raise self.fail_with
        super().transfer(sender, receiver, item_id)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


class TestInitialize:
    def test_setup_values(self, drop) -> None:
        setup = drop.orchestrator.setup
        assert setup.distributor == drop.distributor
        assert setup.verification_identity == drop.verifier
        assert setup.asset_reference == drop.assets.asset_reference
        assert drop.orchestrator.initialized

    def test_second_initialize_rejected(self, drop) -> None:
        with pytest.raises(AlreadyInitializedError):
            drop.orchestrator.initialize(
                drop.assets.asset_reference, drop.other, caller=drop.other
            )
        assert drop.orchestrator.verification_identity == drop.verifier
        assert drop.orchestrator.distributor == drop.distributor

    def test_asset_reference_must_match_registry(
        self, distributor: str, verifier: str
    ) -> None:
        orchestrator = ClaimOrchestrator(
            InMemoryAssetRegistry("0x" + "ab" * 20), DistributionGate(admin=distributor)
        )
        with pytest.raises(ValueError):
            orchestrator.initialize("0x" + "cd" * 20, verifier, caller=distributor)
        assert not orchestrator.initialized

    def test_invalid_address_rejected(self, distributor: str) -> None:
        orchestrator = ClaimOrchestrator(
            InMemoryAssetRegistry("0x" + "ab" * 20), DistributionGate(admin=distributor)
        )
        with pytest.raises(ValueError):
            orchestrator.initialize("0x" + "ab" * 20, "not-an-address", caller=distributor)

    def test_claim_before_initialize(self, distributor: str, receiver: str) -> None:
        orchestrator = ClaimOrchestrator(
            InMemoryAssetRegistry("0x" + "ab" * 20), DistributionGate(admin=distributor)
        )
        with pytest.raises(NotInitializedError):
            orchestrator.claim(receiver, 1, receiver, b"\x00" * 65, b"\x00" * 65)
        with pytest.raises(NotInitializedError):
            _ = orchestrator.distributor


# ---------------------------------------------------------------------------
# Successful claims
# ---------------------------------------------------------------------------


class TestClaimSuccess:
    def test_concrete_scenario(self, drop, verifier_key: str) -> None:
        # V authorizes (L, 7); L binds R; R claims; a replay is rejected.
        keys = LinkKeyManager()
        link_private_key, link_key = keys.generate_keypair()
        sig1 = keys.sign_message_hash(verifier_key, link_authorization_message(link_key, 7))
        sig2 = keys.sign_message_hash(link_private_key, receiver_binding_message(drop.receiver))

        receipt = drop.orchestrator.claim(drop.receiver, 7, link_key, sig1, sig2)
        assert receipt.receiver == drop.receiver
        assert drop.orchestrator.claimed_receiver(link_key) == drop.receiver
        assert drop.assets.owner_of(7) == drop.receiver

        with pytest.raises(AlreadyClaimedError):
            drop.orchestrator.claim(drop.receiver, 7, link_key, sig1, sig2)

    def test_receipt_fields(self, drop) -> None:
        link = drop.issuer.issue(1)
        receipt = _claim(drop, link, drop.receiver)
        assert receipt.link_key == link.link_key
        assert receipt.item_id == 1
        assert receipt.timestamp.year == 2024

    def test_records_claim_and_moves_item(self, drop) -> None:
        link = drop.issuer.issue(2)
        _claim(drop, link, drop.receiver)
        assert drop.orchestrator.is_claimed(link.link_key)
        assert drop.assets.items_of(drop.receiver) == [2]

    def test_emits_one_event(self, drop) -> None:
        link = drop.issuer.issue(3)
        _claim(drop, link, drop.receiver)
        events = drop.orchestrator.events.events()
        assert len(events) == 1
        assert events[0].link_key == link.link_key
        assert events[0].item_id == 3
        assert events[0].receiver == drop.receiver
        assert drop.orchestrator.events.staged_count() == 0

    def test_lowercase_inputs_accepted(self, drop) -> None:
        link = drop.issuer.issue(1)
        drop.orchestrator.claim(
            drop.receiver.lower(),
            1,
            link.link_key.lower(),
            "0x" + link.authorization_signature.hex(),
            "0x" + link.sign_receiver(drop.receiver).hex(),
        )
        assert drop.orchestrator.claimed_receiver(link.link_key) == drop.receiver

    def test_claim_request(self, drop) -> None:
        link = drop.issuer.issue(1)
        receipt = drop.orchestrator.claim_request(link.claim_request(drop.receiver))
        assert receipt.item_id == 1

    def test_reads_are_idempotent(self, drop) -> None:
        link = drop.issuer.issue(1)
        before = [drop.orchestrator.is_claimed(link.link_key) for _ in range(2)]
        assert before == [False, False]
        _claim(drop, link, drop.receiver)
        after = [drop.orchestrator.claimed_receiver(link.link_key) for _ in range(2)]
        assert after == [drop.receiver, drop.receiver]


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class TestClaimRejections:
    def test_paused(self, drop) -> None:
        link = drop.issuer.issue(1)
        drop.gate.pause(drop.distributor)
        with pytest.raises(PausedError) as exc_info:
            _claim(drop, link, drop.receiver)
        assert exc_info.value.kind is ClaimErrorKind.PAUSED
        assert not drop.orchestrator.is_claimed(link.link_key)
        assert drop.assets.owner_of(1) == drop.distributor

    def test_unpause_allows_claims(self, drop) -> None:
        link = drop.issuer.issue(1)
        drop.gate.pause(drop.distributor)
        drop.gate.unpause(drop.distributor)
        _claim(drop, link, drop.receiver)
        assert drop.orchestrator.is_claimed(link.link_key)

    def test_pause_checked_before_claimed(self, drop) -> None:
        link = drop.issuer.issue(1)
        _claim(drop, link, drop.receiver)
        drop.gate.pause(drop.distributor)
        with pytest.raises(PausedError):
            _claim(drop, link, drop.receiver)

    def test_pause_does_not_clear_claims(self, drop) -> None:
        link = drop.issuer.issue(1)
        _claim(drop, link, drop.receiver)
        drop.gate.pause(drop.distributor)
        drop.gate.unpause(drop.distributor)
        assert drop.orchestrator.claimed_receiver(link.link_key) == drop.receiver

    def test_already_claimed_for_other_receiver(self, drop) -> None:
        link = drop.issuer.issue(1)
        _claim(drop, link, drop.receiver)
        with pytest.raises(AlreadyClaimedError):
            _claim(drop, link, drop.other)
        assert drop.orchestrator.claimed_receiver(link.link_key) == drop.receiver

    def test_claimed_checked_before_signatures(self, drop) -> None:
        link = drop.issuer.issue(1)
        _claim(drop, link, drop.receiver)
        with pytest.raises(AlreadyClaimedError):
            drop.orchestrator.claim(
                drop.receiver, 1, link.link_key, b"\x00" * 65, b"\x00" * 65
            )

    def test_wrong_item_is_invalid_authorization(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidAuthorizationSignatureError):
            drop.orchestrator.claim(
                drop.receiver,
                2,
                link.link_key,
                link.authorization_signature,
                link.sign_receiver(drop.receiver),
            )
        assert drop.assets.owner_of(2) == drop.distributor

    def test_authorization_by_other_key(self, drop, other_key: str) -> None:
        keys = LinkKeyManager()
        link_private_key, link_key = keys.generate_keypair()
        forged = keys.sign_message_hash(
            other_key, link_authorization_message(link_key, 1)
        )
        binding = keys.sign_message_hash(
            link_private_key, receiver_binding_message(drop.receiver)
        )
        with pytest.raises(InvalidAuthorizationSignatureError) as exc_info:
            drop.orchestrator.claim(drop.receiver, 1, link_key, forged, binding)
        assert exc_info.value.recovered == drop.other

    def test_garbage_authorization(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidAuthorizationSignatureError) as exc_info:
            drop.orchestrator.claim(
                drop.receiver, 1, link.link_key, "0xdeadbeef", link.sign_receiver(drop.receiver)
            )
        assert exc_info.value.recovered is None

    def test_receiver_signature_for_someone_else(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidReceiverSignatureError):
            drop.orchestrator.claim(
                drop.other,
                1,
                link.link_key,
                link.authorization_signature,
                link.sign_receiver(drop.receiver),
            )
        assert not drop.orchestrator.is_claimed(link.link_key)

    def test_garbage_receiver_signature(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidReceiverSignatureError):
            drop.orchestrator.claim(
                drop.receiver, 1, link.link_key, link.authorization_signature, b"\x01" * 65
            )

    def test_authorization_checked_before_receiver(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidAuthorizationSignatureError):
            drop.orchestrator.claim(
                drop.receiver, 1, link.link_key, b"\x00" * 65, b"\x00" * 65
            )

    def test_rejections_are_claim_errors(self, drop) -> None:
        link = drop.issuer.issue(1)
        drop.gate.pause(drop.distributor)
        with pytest.raises(ClaimError):
            _claim(drop, link, drop.receiver)

    def test_rejection_logged_with_kind(
        self, drop, caplog: pytest.LogCaptureFixture
    ) -> None:
        link = drop.issuer.issue(1)
        drop.gate.pause(drop.distributor)
        with caplog.at_level(logging.WARNING, logger="linkdrop.redemption.orchestrator"):
            with pytest.raises(PausedError):
                _claim(drop, link, drop.receiver)
        assert any("paused" in r.getMessage() for r in caplog.records)

    def test_invalid_item_id(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(ValueError):
            drop.orchestrator.claim(
                drop.receiver, -1, link.link_key, link.authorization_signature, b""
            )

    def test_rejection_emits_no_event(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidReceiverSignatureError):
            drop.orchestrator.claim(
                drop.other,
                1,
                link.link_key,
                link.authorization_signature,
                link.sign_receiver(drop.receiver),
            )
        assert drop.orchestrator.events.events() == []


# ---------------------------------------------------------------------------
# check_claim and standalone verification
# ---------------------------------------------------------------------------


class TestReadOnlyChecks:
    def test_check_claim_passes_without_mutation(self, drop) -> None:
        link = drop.issuer.issue(1)
        drop.orchestrator.check_claim(
            drop.receiver,
            1,
            link.link_key,
            link.authorization_signature,
            link.sign_receiver(drop.receiver),
        )
        assert not drop.orchestrator.is_claimed(link.link_key)
        assert drop.assets.owner_of(1) == drop.distributor

    def test_check_claim_raises_claim_errors(self, drop) -> None:
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidReceiverSignatureError):
            drop.orchestrator.check_claim(
                drop.other,
                1,
                link.link_key,
                link.authorization_signature,
                link.sign_receiver(drop.receiver),
            )

    def test_verify_link_authorization(self, drop) -> None:
        link = drop.issuer.issue(1)
        assert drop.orchestrator.verify_link_authorization(
            link.link_key, 1, link.authorization_signature
        )
        assert not drop.orchestrator.verify_link_authorization(
            link.link_key, 2, link.authorization_signature
        )

    def test_verify_receiver_binding(self, drop) -> None:
        link = drop.issuer.issue(1)
        signature = link.sign_receiver(drop.receiver)
        assert drop.orchestrator.verify_receiver_binding(
            link.link_key, drop.receiver, signature
        )
        assert not drop.orchestrator.verify_receiver_binding(
            link.link_key, drop.other, signature
        )


# ---------------------------------------------------------------------------
# Effect ordering and atomicity
# ---------------------------------------------------------------------------


@pytest.fixture()
def recording(drop) -> tuple[ClaimOrchestrator, RecordingAssets]:
    assets = RecordingAssets(drop.assets.asset_reference)
    for item_id in (1, 2, 3):
        assets.mint(drop.distributor, item_id)
    orchestrator = ClaimOrchestrator(assets, DistributionGate(admin=drop.distributor))
    orchestrator.initialize(assets.asset_reference, drop.verifier, caller=drop.distributor)
    assets.orchestrator = orchestrator
    return orchestrator, assets


class TestEffectOrdering:
    def test_claim_recorded_before_transfer(self, drop, recording) -> None:
        orchestrator, assets = recording
        link = drop.issuer.issue(1)
        assets.watch_link = link.link_key
        orchestrator.claim(
            drop.receiver,
            1,
            link.link_key,
            link.authorization_signature,
            link.sign_receiver(drop.receiver),
        )
        assert assets.observed == [True]
        assert assets.calls == [(drop.distributor, drop.receiver, 1)]

    def test_no_transfer_on_rejection(self, drop, recording) -> None:
        orchestrator, assets = recording
        link = drop.issuer.issue(1)
        with pytest.raises(InvalidReceiverSignatureError):
            orchestrator.claim(
                drop.other,
                1,
                link.link_key,
                link.authorization_signature,
                link.sign_receiver(drop.receiver),
            )
        assert assets.calls == []


class TestTransferFailure:
    def test_failure_rolls_back_claim(self, drop, recording) -> None:
        orchestrator, assets = recording
        assets.fail_with = RuntimeError("registry offline")
        link = drop.issuer.issue(1)
        with pytest.raises(TransferFailedError) as exc_info:
            orchestrator.claim(
                drop.receiver,
                1,
                link.link_key,
                link.authorization_signature,
                link.sign_receiver(drop.receiver),
            )
        assert exc_info.value.kind is ClaimErrorKind.TRANSFER_FAILED
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "registry offline" in str(exc_info.value)
        assert not orchestrator.is_claimed(link.link_key)
        assert orchestrator.events.events() == []
        assert orchestrator.events.staged_count() == 0

    def test_link_usable_after_failure(self, drop, recording) -> None:
        orchestrator, assets = recording
        assets.fail_with = RuntimeError("temporary")
        link = drop.issuer.issue(1)
        request = link.claim_request(drop.receiver)
        with pytest.raises(TransferFailedError):
            orchestrator.claim_request(request)
        assets.fail_with = None
        orchestrator.claim_request(request)
        assert orchestrator.claimed_receiver(link.link_key) == drop.receiver

    def test_item_not_owned_by_distributor(self, drop) -> None:
        drop.assets.transfer(drop.distributor, drop.other, 1)
        link = drop.issuer.issue(1)
        with pytest.raises(TransferFailedError):
            _claim(drop, link, drop.receiver)
        assert not drop.orchestrator.is_claimed(link.link_key)

    def test_unminted_item(self, drop) -> None:
        link = drop.issuer.issue(99)
        with pytest.raises(TransferFailedError):
            _claim(drop, link, drop.receiver)
        assert not drop.orchestrator.is_claimed(link.link_key)

    def test_failure_logged_as_error(
        self, drop, caplog: pytest.LogCaptureFixture
    ) -> None:
        link = drop.issuer.issue(99)
        with caplog.at_level(logging.ERROR, logger="linkdrop.redemption.orchestrator"):
            with pytest.raises(TransferFailedError):
                _claim(drop, link, drop.receiver)
        assert any(r.levelno == logging.ERROR for r in caplog.records)


# ---------------------------------------------------------------------------
# Re-entrancy
# ---------------------------------------------------------------------------


class TestReentrancy:
    def test_same_link_reentry_sees_already_claimed(self, drop) -> None:
        link = drop.issuer.issue(1)
        request = link.claim_request(drop.receiver)
        inner_errors: list[ClaimError] = []

        def hook(sender: str, receiver: str, item_id: int) -> None:
            try:
                drop.orchestrator.claim_request(request)
            except ClaimError as exc:
                inner_errors.append(exc)

        drop.assets.on_receive(drop.receiver, hook)
        drop.orchestrator.claim_request(request)

        assert [e.kind for e in inner_errors] == [ClaimErrorKind.ALREADY_CLAIMED]
        assert drop.assets.owner_of(1) == drop.receiver
        assert len(drop.orchestrator.events.events()) == 1

    def test_same_link_reentry_exactly_one_transfer(self, drop, recording) -> None:
        orchestrator, assets = recording
        link = drop.issuer.issue(1)
        request = link.claim_request(drop.receiver)

        def hook(sender: str, receiver: str, item_id: int) -> None:
            with pytest.raises(AlreadyClaimedError):
                orchestrator.claim_request(request)

        assets.on_receive(drop.receiver, hook)
        orchestrator.claim_request(request)
        assert assets.calls == [(drop.distributor, drop.receiver, 1)]

    def test_uncaught_reentry_error_rolls_back_outer(self, drop) -> None:
        link = drop.issuer.issue(1)
        request = link.claim_request(drop.receiver)

        def hook(sender: str, receiver: str, item_id: int) -> None:
            drop.orchestrator.claim_request(request)

        drop.assets.on_receive(drop.receiver, hook)
        with pytest.raises(TransferFailedError) as exc_info:
            drop.orchestrator.claim_request(request)
        assert isinstance(exc_info.value.__cause__, AlreadyClaimedError)
        assert not drop.orchestrator.is_claimed(link.link_key)
        assert drop.assets.owner_of(1) == drop.distributor

    def test_nested_claim_for_other_link(self, drop) -> None:
        outer = drop.issuer.issue(1)
        inner = drop.issuer.issue(2)
        published: list[int] = []
        drop.orchestrator.events.subscribe(lambda event: published.append(event.item_id))

        def hook(sender: str, receiver: str, item_id: int) -> None:
            drop.assets.on_receive(drop.receiver, None)
            assert published == []
            drop.orchestrator.claim_request(inner.claim_request(drop.receiver))
            assert published == []

        drop.assets.on_receive(drop.receiver, hook)
        drop.orchestrator.claim_request(outer.claim_request(drop.receiver))

        assert drop.assets.items_of(drop.receiver) == [1, 2]
        assert published == [2, 1]

    def test_failed_outer_rolls_back_nested_claim(self, drop) -> None:
        outer = drop.issuer.issue(1)
        inner = drop.issuer.issue(2)

        def hook(sender: str, receiver: str, item_id: int) -> None:
            drop.assets.on_receive(drop.receiver, None)
            drop.orchestrator.claim_request(inner.claim_request(drop.receiver))
            raise RuntimeError("receiver rejects after nested claim")

        drop.assets.on_receive(drop.receiver, hook)
        with pytest.raises(TransferFailedError):
            drop.orchestrator.claim_request(outer.claim_request(drop.receiver))

        assert not drop.orchestrator.is_claimed(outer.link_key)
        assert not drop.orchestrator.is_claimed(inner.link_key)
        assert drop.assets.owner_of(1) == drop.distributor
        assert drop.assets.owner_of(2) == drop.distributor
        assert drop.orchestrator.events.events() == []


# ---------------------------------------------------------------------------
# Event publication after a completed claim
# ---------------------------------------------------------------------------


def _file_backed(drop, log_path: Path) -> ClaimOrchestrator:
    orchestrator = ClaimOrchestrator(
        drop.assets, drop.gate, events=ClaimEventLog(log_path=log_path)
    )
    orchestrator.initialize(
        drop.assets.asset_reference, drop.verifier, caller=drop.distributor
    )
    return orchestrator


class TestEventPublication:
    def test_failing_subscriber_does_not_break_claim(
        self, drop, caplog: pytest.LogCaptureFixture
    ) -> None:
        delivered: list[int] = []

        def broken(event: ClaimedEvent) -> None:
            raise RuntimeError("observer down")

        drop.orchestrator.events.subscribe(broken)
        drop.orchestrator.events.subscribe(lambda event: delivered.append(event.item_id))
        link = drop.issuer.issue(1)

        with caplog.at_level(logging.ERROR, logger="linkdrop.events.log"):
            receipt = drop.orchestrator.claim_request(link.claim_request(drop.receiver))

        assert receipt.item_id == 1
        assert drop.orchestrator.claimed_receiver(link.link_key) == drop.receiver
        assert delivered == [1]
        assert len(drop.orchestrator.events.events()) == 1
        assert any("Event subscriber" in r.getMessage() for r in caplog.records)
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_unwritable_log_keeps_events_staged(self, drop, tmp_path: Path) -> None:
        log_path = tmp_path / "events.jsonl"
        log_path.mkdir()
        orchestrator = _file_backed(drop, log_path)
        link = drop.issuer.issue(2)

        receipt = orchestrator.claim_request(link.claim_request(drop.receiver))

        assert receipt.item_id == 2
        assert orchestrator.is_claimed(link.link_key)
        assert drop.assets.owner_of(2) == drop.receiver
        assert orchestrator.events.staged_count() == 1
        assert orchestrator.events.events() == []

    def test_staged_events_published_once_log_recovers(
        self, drop, tmp_path: Path
    ) -> None:
        log_path = tmp_path / "events.jsonl"
        log_path.mkdir()
        orchestrator = _file_backed(drop, log_path)
        first = drop.issuer.issue(1)
        orchestrator.claim_request(first.claim_request(drop.receiver))

        log_path.rmdir()
        second = drop.issuer.issue(2)
        orchestrator.claim_request(second.claim_request(drop.receiver))

        assert [e.item_id for e in orchestrator.events.events()] == [1, 2]
        assert orchestrator.events.staged_count() == 0
        assert len(log_path.read_text(encoding="utf-8").splitlines()) == 2

    def test_unwritable_log_logged_as_error(
        self, drop, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        log_path = tmp_path / "events.jsonl"
        log_path.mkdir()
        orchestrator = _file_backed(drop, log_path)
        link = drop.issuer.issue(3)
        with caplog.at_level(logging.ERROR, logger="linkdrop.redemption.orchestrator"):
            orchestrator.claim_request(link.claim_request(drop.receiver))
        assert any("kept staged" in r.getMessage() for r in caplog.records)


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_parallel_claims_of_one_link(self, drop) -> None:
        link = drop.issuer.issue(1)
        request = link.claim_request(drop.receiver)
        outcomes: list[str] = []
        lock = threading.Lock()

        def attempt() -> None:
            try:
                drop.orchestrator.claim_request(request)
                result = "ok"
            except AlreadyClaimedError:
                result = "already_claimed"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["already_claimed"] * 5 + ["ok"]
        assert len(drop.orchestrator.events.events()) == 1
