"""Shared fixtures: deterministic keys and a wired-up distribution."""
from __future__ import annotations

import datetime
from dataclasses import dataclass

import pytest

from linkdrop.assets.registry import InMemoryAssetRegistry
from linkdrop.gate.pause import DistributionGate
from linkdrop.links.issuer import LinkIssuer
from linkdrop.redemption.orchestrator import ClaimOrchestrator
from linkdrop.signing.keys import LinkKeyManager

VERIFIER_KEY = "0x" + "11" * 32
DISTRIBUTOR_KEY = "0x" + "22" * 32
RECEIVER_KEY = "0x" + "33" * 32
OTHER_KEY = "0x" + "44" * 32
ASSET_REFERENCE = "0x" + "ab" * 20

FIXED_TIME = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)


def address_of(private_key: str) -> str:
    return LinkKeyManager().address_of(private_key)


@dataclass
class Drop:
    """Everything a claim test needs, wired together."""

    orchestrator: ClaimOrchestrator
    assets: InMemoryAssetRegistry
    gate: DistributionGate
    issuer: LinkIssuer
    distributor: str
    verifier: str
    receiver: str
    other: str


@pytest.fixture()
def keys() -> LinkKeyManager:
    return LinkKeyManager()


@pytest.fixture()
def verifier_key() -> str:
    return VERIFIER_KEY


@pytest.fixture()
def other_key() -> str:
    return OTHER_KEY


@pytest.fixture()
def asset_reference() -> str:
    return ASSET_REFERENCE


@pytest.fixture()
def verifier() -> str:
    return address_of(VERIFIER_KEY)


@pytest.fixture()
def distributor() -> str:
    return address_of(DISTRIBUTOR_KEY)


@pytest.fixture()
def receiver() -> str:
    return address_of(RECEIVER_KEY)


@pytest.fixture()
def other() -> str:
    return address_of(OTHER_KEY)


@pytest.fixture()
def drop(distributor: str, verifier: str, receiver: str, other: str) -> Drop:
    assets = InMemoryAssetRegistry(ASSET_REFERENCE)
    for item_id in (1, 2, 3, 7):
        assets.mint(distributor, item_id)
    gate = DistributionGate(admin=distributor)
    orchestrator = ClaimOrchestrator(assets, gate, clock=lambda: FIXED_TIME)
    orchestrator.initialize(ASSET_REFERENCE, verifier, caller=distributor)
    return Drop(
        orchestrator=orchestrator,
        assets=assets,
        gate=gate,
        issuer=LinkIssuer(VERIFIER_KEY, asset_reference=ASSET_REFERENCE),
        distributor=distributor,
        verifier=verifier,
        receiver=receiver,
        other=other,
    )
