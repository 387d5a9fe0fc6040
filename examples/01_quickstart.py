#!/usr/bin/env python3
"""Example: Quickstart

Issues a claim link off-chain, redeems it for a receiver, and shows that a
second redemption of the same link is rejected.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install linkdrop
"""
from __future__ import annotations

import linkdrop
from linkdrop import (
    AlreadyClaimedError,
    ClaimOrchestrator,
    DistributionGate,
    InMemoryAssetRegistry,
    LinkIssuer,
    LinkKeyManager,
)


def main() -> None:
    print(f"linkdrop version: {linkdrop.__version__}")

    keys = LinkKeyManager()
    verifier_key, _ = keys.generate_keypair()
    _, distributor = keys.generate_keypair()
    _, receiver = keys.generate_keypair()
    _, asset_reference = keys.generate_keypair()

    # Step 1: Set up the distribution
    assets = InMemoryAssetRegistry(asset_reference)
    assets.mint(distributor, 7)
    issuer = LinkIssuer(verifier_key, asset_reference=asset_reference)
    drop = ClaimOrchestrator(assets, DistributionGate(admin=distributor))
    drop.initialize(asset_reference, issuer.verification_identity, caller=distributor)

    # Step 2: Issue a link without touching the distribution
    link = issuer.issue(7)
    print(f"Link URL: {link.to_url('https://claim.example/')[:60]}...")

    # Step 3: Redeem it
    receipt = drop.claim_request(link.claim_request(receiver))
    print(f"Item {receipt.item_id} claimed by {receipt.receiver}")

    # Step 4: Replays are rejected
    try:
        drop.claim_request(link.claim_request(receiver))
    except AlreadyClaimedError as exc:
        print(f"Second claim rejected: {exc.kind.value}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
