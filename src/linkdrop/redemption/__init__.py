"""Redemption — verify a claim link's signature chain and transfer its item.

Quick start
-----------
::

    from linkdrop.assets import InMemoryAssetRegistry
    from linkdrop.gate import DistributionGate
    from linkdrop.redemption import ClaimOrchestrator

    assets = InMemoryAssetRegistry(asset_reference)
    assets.mint(distributor, 7)

    drop = ClaimOrchestrator(assets, DistributionGate(admin=distributor))
    drop.initialize(asset_reference, verifier, caller=distributor)

    receipt = drop.claim(receiver, 7, link_key, authorization_sig, receiver_sig)
    print(drop.claimed_receiver(link_key))  # receiver
"""
from __future__ import annotations

from linkdrop.redemption.orchestrator import ClaimOrchestrator, DistributionSetup

__all__ = ["ClaimOrchestrator", "DistributionSetup"]
