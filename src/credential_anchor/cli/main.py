"""CLI entry point for credential-anchor.

Invoked as::

    credential-anchor [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m credential_anchor.cli.main

Commands
--------
version        Show version information
canonicalize   Print the canonical form and digest of a credential file
issue          Pin a credential and record its digest on-chain
verify         Fetch a credential by CID and check it against the registry
revoke         Revoke an issued credential by digest
show           Show the registry record for a digest

Registry calls go to a local JSON ledger (``--registry-file``); the
content store is configured from ``CREDENTIAL_ANCHOR_*`` environment
variables or the options below.

Applications embedding the CLI can share an ``httpx.AsyncClient`` with the
content store by passing ``obj={"http_client": client}`` to ``cli.main()``
(or ``CliRunner.invoke``). The client is left open for the caller to close.
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, TypeVar

import click
import httpx
from rich.console import Console
from rich.table import Table

from credential_anchor.config import AnchorConfig
from credential_anchor.errors import CredentialError

console = Console()

T = TypeVar("T")


@dataclass
class CliSettings:
    """Options shared by every command, collected on the root group."""

    registry_file: str | None
    registry_address: str | None
    network_id: int | None
    store_token: str | None
    timeout: float | None
    http_client: httpx.AsyncClient | None = None


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="credential-anchor")
@click.option(
    "--registry-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a JSON file acting as the local registry ledger.",
)
@click.option(
    "--registry-address",
    default=None,
    help="Registry contract address (defaults to the local ledger's address).",
)
@click.option("--network-id", type=int, default=None, help="Expected chain id of the registry.")
@click.option(
    "--store-token",
    default=None,
    envvar="PINATA_JWT",
    help="Bearer token for the pinning service (env: PINATA_JWT).",
)
@click.option("--timeout", type=float, default=None, help="Deadline in seconds per network call.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    registry_file: str | None,
    registry_address: str | None,
    network_id: int | None,
    store_token: str | None,
    timeout: float | None,
    log_level: str,
) -> None:
    """Issue, verify and revoke tamper-evident credentials."""
    logging.basicConfig(level=getattr(logging, log_level.upper()))
    injected = ctx.obj if isinstance(ctx.obj, Mapping) else {}
    ctx.obj = CliSettings(
        registry_file=registry_file,
        registry_address=registry_address,
        network_id=network_id,
        store_token=store_token,
        timeout=timeout,
        http_client=injected.get("http_client"),
    )


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from credential_anchor import __version__

    console.print(f"[bold]credential-anchor[/bold] v{__version__}")


# ------------------------------------------------------------------
# canonicalize
# ------------------------------------------------------------------


@cli.command(name="canonicalize")
@click.argument("document_file", type=click.Path(exists=True, dir_okay=False))
def canonicalize_command(document_file: str) -> None:
    """Print the canonical form and digest of DOCUMENT_FILE (a JSON object)."""
    from credential_anchor.document import digest_document, parse_canonical

    try:
        document = parse_canonical(Path(document_file).read_bytes())
        canonical, digest = digest_document(document)
    except CredentialError as exc:
        _fail(exc, "canonicalize")

    click.echo(canonical.decode("utf-8"))
    click.echo(digest)


# ------------------------------------------------------------------
# issue
# ------------------------------------------------------------------


@cli.command(name="issue")
@click.option(
    "--field",
    "-f",
    "fields",
    multiple=True,
    help="Credential field as KEY=VALUE (repeatable, e.g. -f name='Ada Lovelace').",
)
@click.option(
    "--document",
    "document_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file with the credential fields.",
)
@click.option("--issuer", required=True, help="Address of the issuing (connected) wallet.")
@click.option("--cid", default=None, help="CID of an already-pinned copy; skips upload.")
@click.option("--issued-at", default=None, help="Override the issuedAt timestamp (ISO-8601).")
@click.pass_obj
def issue_command(
    settings: CliSettings,
    fields: tuple[str, ...],
    document_file: str | None,
    issuer: str,
    cid: str | None,
    issued_at: str | None,
) -> None:
    """Pin a credential to the content store and record its digest."""
    from credential_anchor.document import CredentialDocument, parse_canonical
    from credential_anchor.workflow import format_status

    try:
        if document_file:
            document = parse_canonical(Path(document_file).read_bytes())
        else:
            document = CredentialDocument()
        values = dict(document.fields)
        for item in fields:
            key, sep, value = item.partition("=")
            if not sep or not key.strip():
                raise click.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="--field")
            values[key.strip()] = value
        document = CredentialDocument(fields=values, issued_at=issued_at or document.issued_at)
    except CredentialError as exc:
        _fail(exc, "issue")

    async def _issue():  # type: ignore[no-untyped-def]
        async with _open_workflow(settings, signer=issuer) as workflow:
            return await workflow.issue(document, issuer, cid=cid, timeout=settings.timeout)

    session = _run(_issue, "issue")

    console.print(f"[green]{format_status(session)}[/green]")
    table = Table(title="Issued Credential", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Digest", session.digest)
    table.add_row("CID", session.cid)
    table.add_row("Issuer", session.issuer)
    table.add_row("Issued at", session.document.issued_at)
    table.add_row("Transaction", session.issue_tx or "(already on-chain)")
    console.print(table)


# ------------------------------------------------------------------
# verify
# ------------------------------------------------------------------


@cli.command(name="verify")
@click.argument("cid")
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit the result as JSON.")
@click.pass_obj
def verify_command(settings: CliSettings, cid: str, as_json: bool) -> None:
    """Fetch the credential pinned as CID and check its digest on-chain.

    Exits non-zero unless the credential is found and not revoked.
    """
    from credential_anchor.workflow import VerificationStatus, format_status

    async def _verify():  # type: ignore[no-untyped-def]
        async with _open_workflow(settings) as workflow:
            return await workflow.verify(cid, timeout=settings.timeout)

    result = _run(_verify, "verify")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.status is VerificationStatus.VALID:
        console.print(f"  [green]PASS[/green]  {format_status(result)}")
    else:
        console.print(f"  [red]FAIL[/red]  {format_status(result)}")
    if not as_json:
        console.print(f"  Digest: {result.digest}")
        for key, value in sorted(result.document.to_dict().items()):
            console.print(f"  {key}: {value}", markup=False)

    if result.status is not VerificationStatus.VALID:
        sys.exit(1)


# ------------------------------------------------------------------
# revoke
# ------------------------------------------------------------------


@cli.command(name="revoke")
@click.argument("digest")
@click.option("--issuer", required=True, help="Address of the connected wallet (must be the issuer).")
@click.pass_obj
def revoke_command(settings: CliSettings, digest: str, issuer: str) -> None:
    """Revoke the credential recorded under DIGEST."""
    from credential_anchor.workflow import format_status

    async def _revoke():  # type: ignore[no-untyped-def]
        async with _open_workflow(settings, signer=issuer) as workflow:
            return await workflow.revoke(digest, timeout=settings.timeout)

    session = _run(_revoke, "revoke")
    console.print(f"[red]{format_status(session)}[/red]")


# ------------------------------------------------------------------
# show
# ------------------------------------------------------------------


@cli.command(name="show")
@click.argument("digest")
@click.pass_obj
def show_command(settings: CliSettings, digest: str) -> None:
    """Show the registry record for DIGEST."""
    from credential_anchor.registry import RegistryClient

    async def _show():  # type: ignore[no-untyped-def]
        config = _build_config(settings)
        registry = RegistryClient(config, _build_contract(settings))
        return await registry.get_record(digest, timeout=settings.timeout)

    record = _run(_show, "show")
    if record is None:
        console.print("[yellow]Credential not found on-chain.[/yellow]")
        sys.exit(1)

    table = Table(title="Registry Record", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Digest", record.digest)
    table.add_row("Issuer", record.issuer)
    table.add_row("CID", record.cid)
    table.add_row("Issued at", record.issued_at.isoformat())
    table.add_row("Revoked", "[red]Yes[/red]" if record.revoked else "[green]No[/green]")
    console.print(table)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _fail(exc: CredentialError, operation: str) -> NoReturn:
    from credential_anchor.workflow import format_status

    console.print(format_status(exc, operation), style="red", markup=False)
    sys.exit(1)


def _run(factory: Callable[[], Awaitable[T]], operation: str) -> T:
    """Run an async operation to completion, reporting credential errors."""
    try:
        return asyncio.run(factory())  # type: ignore[arg-type]
    except CredentialError as exc:
        _fail(exc, operation)


def _build_contract(settings: CliSettings):  # type: ignore[no-untyped-def]
    """Return the local ledger, persisted to ``--registry-file`` if given."""
    from credential_anchor.registry import DEFAULT_LEDGER_NETWORK_ID, JsonFileRegistryContract

    persist_path = Path(settings.registry_file) if settings.registry_file else None
    return JsonFileRegistryContract(
        persist_path=persist_path,
        network_id=settings.network_id or DEFAULT_LEDGER_NETWORK_ID,
    )


def _build_config(settings: CliSettings) -> AnchorConfig:
    """Merge environment configuration with command-line overrides."""
    from credential_anchor.registry import DEFAULT_LEDGER_ADDRESS

    config = AnchorConfig.from_env()
    updates: dict[str, object] = {}
    if settings.registry_address:
        updates["registry_address"] = settings.registry_address
    elif config.registry_address is None:
        updates["registry_address"] = DEFAULT_LEDGER_ADDRESS
    if settings.network_id is not None:
        updates["network_id"] = settings.network_id
    if settings.store_token:
        updates["store_auth_token"] = settings.store_token
    return AnchorConfig(**{**config.model_dump(), **updates})


def _open_workflow(settings: CliSettings, signer: str | None = None):  # type: ignore[no-untyped-def]
    from credential_anchor.convenience import open_workflow

    return open_workflow(
        config=_build_config(settings),
        contract=_build_contract(settings),
        signer=signer,
        http_client=settings.http_client,
    )


if __name__ == "__main__":
    cli()
