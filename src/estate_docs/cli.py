from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer

from .app.logging import setup_logging
from .app.settings import BackOfficeSettings, get_settings
from .backoffice.http import HttpBackOffice
from .documents.resolver import DocumentResolver, Outcome
from .models import Block, LandPlot, Plot, UnitKind
from .session import PropertySession

app = typer.Typer(no_args_is_help=True, add_completion=False)

_UNIT_MODELS = {UnitKind.PLOT: Plot, UnitKind.LAND_PLOT: LandPlot, UnitKind.BLOCK: Block}


def _settings(ctx: typer.Context) -> BackOfficeSettings:
    return ctx.obj if isinstance(ctx.obj, BackOfficeSettings) else get_settings()


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(None, help="Back-office API base URL"),
    token: Optional[str] = typer.Option(None, help="Bearer token"),
    log_level: Optional[str] = typer.Option(None, help="Override LOG_LEVEL"),
):
    setup_logging(level=log_level)
    ctx.obj = get_settings(base_url=base_url, token=token)


@app.command("units")
def units_cmd(
    ctx: typer.Context,
    property_id: int = typer.Argument(..., help="Property id"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """List the plots, land plots and blocks of a property."""
    settings = _settings(ctx)

    async def _run():
        async with HttpBackOffice(settings=settings) as backoffice:
            session = PropertySession(property_id, backoffice, settings=settings)
            return await session.catalog.load_units(property_id)

    units = asyncio.run(_run())
    if as_json:
        _echo_json([{"key": u.key, "plot_number": u.business_key} for u in units])
        return
    for unit in units:
        typer.echo(f"{unit.key:<20} {unit.business_key or '-'}")
    if units.failed_sources:
        typer.echo(
            f"Unavailable sources: {', '.join(k.value for k in units.failed_sources)}", err=True
        )


@app.command("counts")
def counts_cmd(
    ctx: typer.Context,
    property_id: int = typer.Argument(..., help="Property id"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Resolve every unit of a property and print its document count."""
    settings = _settings(ctx)

    async def _run():
        async with HttpBackOffice(settings=settings) as backoffice:
            session = PropertySession(property_id, backoffice, settings=settings)
            await session.open()
            return session

    session = asyncio.run(_run())
    counts = session.document_counts()
    if as_json:
        _echo_json(counts)
        return
    if not counts:
        typer.echo("No units found.")
        return
    failures = session.last_report.failures if session.last_report else {}
    for key, count in counts.items():
        marker = " (error)" if key in failures else ""
        typer.echo(f"{key:<20} {count if count is not None else '?'}{marker}")


@app.command("resolve")
def resolve_cmd(
    ctx: typer.Context,
    property_id: int = typer.Argument(..., help="Property id"),
    unit_id: Optional[int] = typer.Option(None, help="Unit id; omit for a property-wide lookup"),
    kind: UnitKind = typer.Option(UnitKind.PLOT, help="Unit kind"),
    plot_number: Optional[str] = typer.Option(None, help="Business key of the unit"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Run the tiered lookup for one unit and show which tier matched."""
    if plot_number and unit_id is None:
        raise typer.BadParameter("--plot-number needs --unit-id")
    settings = _settings(ctx)
    unit = None
    if unit_id is not None:
        data: dict = {"id": unit_id}
        if plot_number:
            data["plot_number"] = plot_number
        unit = _UNIT_MODELS[kind].model_validate(data)

    async def _run():
        async with HttpBackOffice(settings=settings) as backoffice:
            resolver = DocumentResolver(
                backoffice,
                tier_limit=settings.tier_limit,
                property_limit=settings.property_limit,
            )
            return await resolver.resolve_outcome(property_id, unit)

    resolution = asyncio.run(_run())
    if as_json:
        _echo_json(
            {
                "outcome": resolution.outcome.value,
                "tier": resolution.tier.value if resolution.tier else None,
                "attempts": [a.tier.value for a in resolution.attempts],
                "documents": [d.model_dump(mode="json") for d in resolution.documents],
            }
        )
    else:
        tiers = " -> ".join(a.tier.value for a in resolution.attempts) or "none"
        typer.echo(f"tiers: {tiers}")
        typer.echo(f"outcome: {resolution.outcome.value}")
        for doc in resolution.documents:
            typer.echo(f"  #{doc.id} {doc.title} [{doc.status.value}]")
    if resolution.outcome is Outcome.FAILED:
        raise typer.Exit(code=1)
