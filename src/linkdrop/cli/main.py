"""CLI entry point for linkdrop.

Invoked as::

    linkdrop [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m linkdrop.cli.main

All commands operate on a JSON state file (``--state-file``) holding the
distribution config, claimed links, the pause flag and item ownership of a
local in-memory collection. Claim events are appended to a JSONL file next
to it.

Commands
--------
init          Initialize a distribution
mint          Mint items to the distributor (local collection)
link issue    Issue claim links signed by the verification key
link verify   Check a claim link without redeeming it
claim         Redeem a claim link for a receiver
status        Show whether a link key has been claimed
pause         Pause claims (admin only)
unpause       Resume claims (admin only)
events        Show recorded claim events
"""
from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from linkdrop.assets import InMemoryAssetRegistry
    from linkdrop.gate import DistributionGate
    from linkdrop.models import DropConfig
    from linkdrop.redemption import ClaimOrchestrator

console = Console()

DEFAULT_STATE_FILE = "linkdrop-state.json"


@dataclass
class _Session:
    """Collaborators rebuilt from the state file for one command."""

    state_file: Path
    config: DropConfig
    assets: InMemoryAssetRegistry
    gate: DistributionGate
    drop: ClaimOrchestrator


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option()
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False),
    default=DEFAULT_STATE_FILE,
    show_default=True,
    envvar="LINKDROP_STATE_FILE",
    help="JSON file holding the distribution state.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    show_default=True,
    help="Logging level.",
)
@click.pass_context
def cli(ctx: click.Context, state_file: str, log_level: str) -> None:
    """Delegated, link-based asset claims"""
    logging.basicConfig(level=getattr(logging, log_level))
    ctx.ensure_object(dict)
    ctx.obj["state_file"] = Path(state_file)


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from linkdrop import __version__

    console.print(f"[bold]linkdrop[/bold] v{__version__}")


# ------------------------------------------------------------------
# init
# ------------------------------------------------------------------


@cli.command(name="init")
@click.option("--distributor", required=True, help="Address items are sent from.")
@click.option("--verifier", required=True, help="Address whose key authorizes links.")
@click.option("--asset", required=True, help="Address of the asset collection.")
@click.option(
    "--events-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSONL file for claim events (defaults to <state-file>.events.jsonl).",
)
@click.pass_context
def init_command(
    ctx: click.Context,
    distributor: str,
    verifier: str,
    asset: str,
    events_file: str | None,
) -> None:
    """Initialize a new distribution. Can only be run once per state file."""
    from pydantic import ValidationError

    from linkdrop.models import DropConfig

    state_file: Path = ctx.obj["state_file"]
    if state_file.exists():
        console.print(
            f"[red]Error:[/red] {state_file} already holds an initialized distribution."
        )
        sys.exit(1)

    try:
        config = DropConfig(
            distributor=distributor,
            verification_identity=verifier,
            asset_reference=asset,
            events_path=events_file or str(state_file.with_suffix(".events.jsonl")),
        )
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    session = _build_session(state_file, config, claims={}, owners={})
    _save_session(session)

    console.print(f"[green]Initialized[/green] distribution in [bold]{state_file}[/bold]")
    console.print(f"  Distributor:  {config.distributor}")
    console.print(f"  Verifier:     {config.verification_identity}")
    console.print(f"  Asset:        {config.asset_reference}")


# ------------------------------------------------------------------
# mint
# ------------------------------------------------------------------


@cli.command(name="mint")
@click.argument("item_ids", nargs=-1, type=int, required=True)
@click.option("--owner", default=None, help="Owner of the new items (default: distributor).")
@click.pass_context
def mint_command(ctx: click.Context, item_ids: tuple[int, ...], owner: str | None) -> None:
    """Mint ITEM_IDS into the local collection."""
    session = _load_session(ctx.obj["state_file"])
    recipient = owner or session.config.distributor
    try:
        for item_id in item_ids:
            session.assets.mint(recipient, item_id)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    _save_session(session)
    console.print(f"[green]Minted[/green] {len(item_ids)} item(s) to {recipient}")


# ------------------------------------------------------------------
# link group
# ------------------------------------------------------------------


@cli.group(name="link")
def link_group() -> None:
    """Issue and inspect claim links."""


@link_group.command(name="issue")
@click.option(
    "--verifier-key",
    required=True,
    envvar="LINKDROP_VERIFIER_KEY",
    help="Private key of the verification identity (hex).",
)
@click.option(
    "--item-id",
    "-i",
    "item_ids",
    type=int,
    multiple=True,
    required=True,
    help="Item to issue a link for (repeatable).",
)
@click.option(
    "--base-url",
    default="https://claim.example/",
    show_default=True,
    help="URL the link parameters are appended to.",
)
@click.option(
    "--output",
    type=click.Path(),
    default=None,
    help="Write the links as JSON to this file path.",
)
@click.pass_context
def link_issue_command(
    ctx: click.Context,
    verifier_key: str,
    item_ids: tuple[int, ...],
    base_url: str,
    output: str | None,
) -> None:
    """Issue one claim link per item."""
    from linkdrop.links import LinkIssuer

    asset_reference: str | None = None
    expected_verifier: str | None = None
    state_file: Path = ctx.obj["state_file"]
    if state_file.exists():
        config = _load_session(state_file).config
        asset_reference = config.asset_reference
        expected_verifier = config.verification_identity

    try:
        issuer = LinkIssuer(verifier_key, asset_reference=asset_reference)
        links = issuer.issue_many(list(item_ids))
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if expected_verifier is not None and issuer.verification_identity != expected_verifier:
        console.print(
            "[yellow]Warning:[/yellow] the verifier key does not match the "
            "distribution's verification identity; these links will not validate."
        )

    entries = [
        {"item_id": str(link.item_id), "link_key": link.link_key, "url": link.to_url(base_url)}
        for link in links
    ]

    if output:
        Path(output).write_text(json.dumps(entries, indent=2), encoding="utf-8")
        console.print(f"[green]Links written to[/green] {output}")
        return

    table = Table(title="Claim Links", show_header=True)
    table.add_column("Item", justify="right")
    table.add_column("Link Key", style="cyan")
    table.add_column("URL", overflow="fold")
    for entry in entries:
        table.add_row(entry["item_id"], entry["link_key"], entry["url"])
    console.print(table)


@link_group.command(name="verify")
@click.argument("url")
@click.pass_context
def link_verify_command(ctx: click.Context, url: str) -> None:
    """Check the claim link at URL against the distribution without claiming."""
    from linkdrop.links import ClaimLink, LinkFormatError

    session = _load_session(ctx.obj["state_file"])
    try:
        link = ClaimLink.from_url(url)
    except LinkFormatError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    issues: list[str] = []
    passed: list[str] = []

    if session.drop.verify_link_authorization(
        link.link_key, link.item_id, link.authorization_signature
    ):
        passed.append("Authorization signature matches the verification identity.")
    else:
        issues.append("Authorization signature was not made by the verification identity.")

    receiver = session.drop.claimed_receiver(link.link_key)
    if receiver is None:
        passed.append("Link has not been claimed.")
    else:
        issues.append(f"Link was already claimed by {receiver}.")

    if session.gate.is_paused():
        issues.append("Claims are currently paused.")

    console.print(f"  Link key: [bold]{link.link_key}[/bold]  item {link.item_id}")
    for item in passed:
        console.print(f"  [green]PASS[/green]  {item}")
    for item in issues:
        console.print(f"  [red]FAIL[/red]  {item}")

    if issues:
        sys.exit(1)
    console.print("\n[green]Link is claimable.[/green]")


# ------------------------------------------------------------------
# claim
# ------------------------------------------------------------------


@cli.command(name="claim")
@click.argument("url")
@click.option("--receiver", "-r", required=True, help="Address to receive the item.")
@click.pass_context
def claim_command(ctx: click.Context, url: str, receiver: str) -> None:
    """Redeem the claim link at URL for RECEIVER."""
    from linkdrop.errors import ClaimError
    from linkdrop.links import ClaimLink, LinkFormatError

    session = _load_session(ctx.obj["state_file"])
    try:
        request = ClaimLink.from_url(url).claim_request(receiver)
    except (LinkFormatError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    try:
        receipt = session.drop.claim_request(request)
    except ClaimError as exc:
        console.print(f"[red]Claim rejected[/red] ({exc.kind.value}): {exc}")
        sys.exit(1)

    _save_session(session)

    console.print(f"[green]Claimed[/green] item [bold]{receipt.item_id}[/bold]")
    console.print(f"  Link key:  {receipt.link_key}")
    console.print(f"  Receiver:  {receipt.receiver}")
    console.print(f"  Claimed:   {receipt.timestamp.isoformat()}")


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------


@cli.command(name="status")
@click.argument("link_key")
@click.pass_context
def status_command(ctx: click.Context, link_key: str) -> None:
    """Show whether LINK_KEY has been claimed, and by whom."""
    session = _load_session(ctx.obj["state_file"])
    try:
        record = session.drop.registry.get(link_key)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if record is None:
        console.print(f"[yellow]Unclaimed[/yellow]  {link_key}")
        return
    console.print(f"[green]Claimed[/green]  {record.link_key}")
    console.print(f"  Receiver:  {record.receiver}")
    console.print(f"  Claimed:   {record.claimed_at.isoformat()}")


# ------------------------------------------------------------------
# pause / unpause
# ------------------------------------------------------------------


@cli.command(name="pause")
@click.option("--caller", required=True, help="Address requesting the pause.")
@click.pass_context
def pause_command(ctx: click.Context, caller: str) -> None:
    """Pause all claims."""
    _set_paused(ctx.obj["state_file"], caller, paused=True)


@cli.command(name="unpause")
@click.option("--caller", required=True, help="Address requesting the resume.")
@click.pass_context
def unpause_command(ctx: click.Context, caller: str) -> None:
    """Resume claims."""
    _set_paused(ctx.obj["state_file"], caller, paused=False)


def _set_paused(state_file: Path, caller: str, paused: bool) -> None:
    from linkdrop.errors import UnauthorizedError

    session = _load_session(state_file)
    try:
        if paused:
            session.gate.pause(caller)
        else:
            session.gate.unpause(caller)
    except UnauthorizedError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    _save_session(session)
    console.print("[yellow]Claims paused.[/yellow]" if paused else "[green]Claims resumed.[/green]")


# ------------------------------------------------------------------
# events
# ------------------------------------------------------------------


@cli.command(name="events")
@click.option("--tail", type=int, default=None, help="Show only the last N events.")
@click.pass_context
def events_command(ctx: click.Context, tail: int | None) -> None:
    """List recorded claim events."""
    session = _load_session(ctx.obj["state_file"])
    events = session.drop.events.read_log(tail=tail)

    if not events:
        console.print("[yellow]No claim events recorded.[/yellow]")
        return

    table = Table(title="Claim Events", show_header=True)
    table.add_column("Timestamp")
    table.add_column("Link Key", style="cyan")
    table.add_column("Item", justify="right")
    table.add_column("Receiver")
    for event in events:
        table.add_row(
            event.timestamp.isoformat(), event.link_key, str(event.item_id), event.receiver
        )
    console.print(table)
    console.print(f"\nTotal: {len(events)} event(s)")


# ------------------------------------------------------------------
# Helpers — file-backed persistence for CLI use
# ------------------------------------------------------------------


def _build_session(
    state_file: Path,
    config: DropConfig,
    claims: dict[str, dict[str, object]],
    owners: dict[str, str],
) -> _Session:
    """Wire an orchestrator and its collaborators from persisted state."""
    from linkdrop.assets import InMemoryAssetRegistry
    from linkdrop.events import ClaimEventLog
    from linkdrop.gate import DistributionGate
    from linkdrop.redemption import ClaimOrchestrator
    from linkdrop.registry import ClaimRegistry

    assets = InMemoryAssetRegistry(config.asset_reference)
    assets.restore(owners)
    gate = DistributionGate(admin=config.distributor, paused=config.paused)
    registry = ClaimRegistry()
    registry.restore(claims)
    events = ClaimEventLog(Path(config.events_path) if config.events_path else None)

    drop = ClaimOrchestrator(assets, gate, events=events, registry=registry)
    drop.initialize(
        config.asset_reference, config.verification_identity, caller=config.distributor
    )
    return _Session(state_file=state_file, config=config, assets=assets, gate=gate, drop=drop)


def _load_session(state_file: Path) -> _Session:
    """Load the state file or exit with an error if it is missing or corrupt."""
    from pydantic import ValidationError

    from linkdrop.models import DropConfig

    if not state_file.exists():
        console.print(
            f"[red]Error:[/red] {state_file} does not exist. Run 'linkdrop init' first."
        )
        sys.exit(1)
    try:
        data: dict[str, object] = json.loads(state_file.read_text(encoding="utf-8"))
        config = DropConfig.model_validate(data["config"])
        return _build_session(
            state_file,
            config,
            claims=dict(data.get("claims") or {}),  # type: ignore[arg-type]
            owners=dict(data.get("assets") or {}),  # type: ignore[arg-type]
        )
    except (json.JSONDecodeError, KeyError, ValueError, ValidationError) as exc:
        console.print(f"[red]Error:[/red] Could not load state file {state_file}: {exc}")
        sys.exit(1)


def _save_session(session: _Session) -> None:
    """Persist config, claims and item ownership to the state file."""
    config = session.config.model_copy(update={"paused": session.gate.is_paused()})
    data = {
        "config": config.model_dump(),
        "claims": session.drop.registry.to_dict(),
        "assets": session.assets.to_dict()["owners"],
    }
    session.state_file.parent.mkdir(parents=True, exist_ok=True)
    session.state_file.write_text(json.dumps(data, indent=2), encoding="utf-8")


if __name__ == "__main__":
    cli()
