"""Claim link issuance and URL encoding.

Quick start
-----------
::

    from linkdrop.links import ClaimLink, LinkIssuer

    issuer = LinkIssuer(verifier_private_key)
    link = issuer.issue(7)
    url = link.to_url("https://claim.example/")

    request = ClaimLink.from_url(url).claim_request(receiver)
"""
from __future__ import annotations

from linkdrop.links.issuer import ClaimLink, LinkFormatError, LinkIssuer

__all__ = ["ClaimLink", "LinkFormatError", "LinkIssuer"]
