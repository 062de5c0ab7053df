"""CLI interface for redimo: thin wrapper over :class:`Client`."""

from __future__ import annotations

import click

from redimo.api.client import Client
from redimo.core.config import Settings
from redimo.core.models import AddFlag, Location, Unit
from redimo.utils.logging import setup_logging

# let "-inf" and negative numbers through as arguments
_SCORE_ARGS = {"ignore_unknown_options": True}

_UNITS = click.Choice(["m", "km", "mi", "ft"])


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.option("--backend", type=click.Choice(["dynamodb", "sqlite"]), default=None, help="Store backend.")
@click.option("--table", default=None, help="DynamoDB table name.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, backend: str | None, table: str | None) -> None:
    """redimo: Redis sorted sets and geo indexes on DynamoDB."""
    setup_logging(verbose=verbose, level=Settings().log_level)
    ctx.ensure_object(dict)
    overrides: dict[str, object] = {}
    if backend:
        overrides["backend"] = backend
    if table:
        overrides["table_name"] = table
    ctx.obj["overrides"] = overrides


def _get_client(ctx: click.Context) -> Client:
    settings = Settings(**ctx.obj["overrides"])  # type: ignore[arg-type]
    return Client(settings=settings)


def _echo_scores(members: dict[str, float]) -> None:
    if not members:
        click.echo("(empty)")
        return
    for member, score in members.items():
        click.echo(f"{member}\t{score:g}")


def _echo_locations(members: dict[str, Location]) -> None:
    if not members:
        click.echo("(empty)")
        return
    for member, location in members.items():
        click.echo(f"{member}\t{location.lon:.6f}\t{location.lat:.6f}")


# ---------------------------------------------------------------------------
# Sorted sets
# ---------------------------------------------------------------------------


@main.command(context_settings=_SCORE_ARGS)
@click.argument("key")
@click.argument("pairs", nargs=-1, required=True)
@click.option("--nx", is_flag=True, help="Only add new members.")
@click.option("--xx", is_flag=True, help="Only update existing members.")
@click.pass_context
def zadd(ctx: click.Context, key: str, pairs: tuple[str, ...], nx: bool, xx: bool) -> None:
    """Add members: ZADD KEY SCORE MEMBER [SCORE MEMBER ...]."""
    if len(pairs) % 2:
        raise click.UsageError("expected SCORE MEMBER pairs")
    try:
        members = {pairs[i + 1]: float(pairs[i]) for i in range(0, len(pairs), 2)}
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="SCORE") from exc

    flags = AddFlag.NONE
    if nx:
        flags |= AddFlag.IF_NOT_EXISTS
    if xx:
        flags |= AddFlag.IF_EXISTS
    click.echo(_get_client(ctx).zadd(key, members, flags))


@main.command()
@click.argument("key")
@click.argument("member")
@click.pass_context
def zscore(ctx: click.Context, key: str, member: str) -> None:
    """Print a member's score."""
    score, found = _get_client(ctx).zscore(key, member)
    click.echo(f"{score:g}" if found else "(nil)")


@main.command()
@click.argument("key")
@click.pass_context
def zcard(ctx: click.Context, key: str) -> None:
    """Print the number of members."""
    click.echo(_get_client(ctx).zcard(key))


@main.command(context_settings=_SCORE_ARGS)
@click.argument("key")
@click.argument("delta", type=float)
@click.argument("member")
@click.pass_context
def zincrby(ctx: click.Context, key: str, delta: float, member: str) -> None:
    """Increment a member's score and print the result."""
    click.echo(f"{_get_client(ctx).zincrby(key, member, delta):g}")


@main.command(context_settings=_SCORE_ARGS)
@click.argument("key")
@click.argument("start", type=int)
@click.argument("stop", type=int)
@click.option("--rev", is_flag=True, help="Rank from the highest score.")
@click.pass_context
def zrange(ctx: click.Context, key: str, start: int, stop: int, rev: bool) -> None:
    """Print members ranked START..STOP (negative counts from the top)."""
    client = _get_client(ctx)
    members = client.zrevrange(key, start, stop) if rev else client.zrange(key, start, stop)
    _echo_scores(members)


@main.command(context_settings=_SCORE_ARGS)
@click.argument("key")
@click.argument("min_score", metavar="MIN", type=float)
@click.argument("max_score", metavar="MAX", type=float)
@click.option("--offset", default=0, help="Matches to skip.")
@click.option("--count", default=0, help="Maximum results (0 = all).")
@click.pass_context
def zrangebyscore(
    ctx: click.Context, key: str, min_score: float, max_score: float, offset: int, count: int
) -> None:
    """Print members with MIN <= score <= MAX."""
    _echo_scores(_get_client(ctx).zrangebyscore(key, min_score, max_score, offset, count))


@main.command()
@click.argument("key")
@click.argument("members", nargs=-1, required=True)
@click.pass_context
def zrem(ctx: click.Context, key: str, members: tuple[str, ...]) -> None:
    """Remove members and print how many existed."""
    click.echo(_get_client(ctx).zrem(key, *members))


@main.command()
@click.argument("key")
@click.argument("count", type=int, default=1)
@click.pass_context
def zpopmin(ctx: click.Context, key: str, count: int) -> None:
    """Remove and print the lowest-scored members."""
    _echo_scores(_get_client(ctx).zpopmin(key, count))


@main.command()
@click.argument("key")
@click.argument("count", type=int, default=1)
@click.pass_context
def zpopmax(ctx: click.Context, key: str, count: int) -> None:
    """Remove and print the highest-scored members."""
    _echo_scores(_get_client(ctx).zpopmax(key, count))


# ---------------------------------------------------------------------------
# Geo
# ---------------------------------------------------------------------------


@main.command(context_settings=_SCORE_ARGS)
@click.argument("key")
@click.argument("triples", nargs=-1, required=True)
@click.pass_context
def geoadd(ctx: click.Context, key: str, triples: tuple[str, ...]) -> None:
    """Add members: GEOADD KEY LON LAT MEMBER [LON LAT MEMBER ...]."""
    if len(triples) % 3:
        raise click.UsageError("expected LON LAT MEMBER triples")
    try:
        members = {
            triples[i + 2]: Location(lat=float(triples[i + 1]), lon=float(triples[i]))
            for i in range(0, len(triples), 3)
        }
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="LON/LAT") from exc
    click.echo(_get_client(ctx).geoadd(key, members))


@main.command()
@click.argument("key")
@click.argument("members", nargs=-1, required=True)
@click.pass_context
def geopos(ctx: click.Context, key: str, members: tuple[str, ...]) -> None:
    """Print stored positions as LON LAT."""
    _echo_locations(_get_client(ctx).geopos(key, *members))


@main.command()
@click.argument("key")
@click.argument("member1")
@click.argument("member2")
@click.option("--unit", type=_UNITS, default="m", help="Distance unit.")
@click.pass_context
def geodist(ctx: click.Context, key: str, member1: str, member2: str, unit: str) -> None:
    """Print the distance between two members."""
    distance, found = _get_client(ctx).geodist(key, member1, member2, Unit.parse(unit))
    click.echo(f"{distance:.4f}" if found else "(nil)")


@main.command(context_settings=_SCORE_ARGS)
@click.argument("key")
@click.argument("lon", type=float)
@click.argument("lat", type=float)
@click.argument("radius", type=float)
@click.option("--unit", type=_UNITS, default="m", help="Radius unit.")
@click.option("--count", default=0, help="Maximum results (0 = all).")
@click.pass_context
def georadius(
    ctx: click.Context, key: str, lon: float, lat: float, radius: float, unit: str, count: int
) -> None:
    """Print members within RADIUS of LON LAT."""
    center = Location(lat=lat, lon=lon)
    _echo_locations(_get_client(ctx).georadius(key, center, radius, Unit.parse(unit), count))
