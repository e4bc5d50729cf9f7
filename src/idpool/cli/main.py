"""idpool CLI entry point."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import click

from idpool.core.config import DEFAULT_CONFIG_FILE, load_pool_config
from idpool.core.models import PoolConfig


def pool_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that works on a pool file."""
    func = click.option(
        "--file",
        "filename",
        type=click.Path(dir_okay=False),
        default=None,
        help="Pool file (overrides the config).",
    )(func)
    return click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=DEFAULT_CONFIG_FILE,
        show_default=True,
        help="YAML config file.",
    )(func)


def _resolve_config(config_path: Path, **overrides: Any) -> PoolConfig:
    import yaml
    from pydantic import ValidationError

    try:
        return load_pool_config(config_path, **overrides)
    except ValidationError as exc:
        raise click.ClickException(f"Invalid pool configuration:\n{exc}") from None
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Cannot parse {config_path}:\n{exc}") from None
    except OSError as exc:
        raise click.ClickException(f"Cannot read {config_path}: {exc}") from None


@click.group()
@click.version_option(package_name="idpool")
def cli() -> None:
    """idpool: time-bucketed identifier allocation."""


@cli.command()
@pool_options
@click.option("--count", type=int, default=None, help="Number of identifiers to generate.")
@click.option("--min-id", type=int, default=None, help="Lowest identifier (inclusive).")
@click.option("--max-id", type=int, default=None, help="Upper identifier bound (exclusive).")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing pool file.")
def init(
    config_path: Path,
    filename: str | None,
    count: int | None,
    min_id: int | None,
    max_id: int | None,
    force: bool,
) -> None:
    """Generate a shuffled pool and write it to the pool file."""
    from idpool.core.generator import generate
    from idpool.core.store import IdPoolError, PoolStore

    config = _resolve_config(
        config_path, filename=filename, id_count=count, min_id=min_id, max_id=max_id
    )
    store = PoolStore(Path(config.filename))
    if store.exists() and not force:
        click.echo(f"{store.path} already exists; use --force to overwrite.")
        raise SystemExit(1)

    try:
        store.lock()
        written = store.save(generate(config.id_count, config.min_id, config.max_id))
    except (IdPoolError, OSError) as exc:
        raise click.ClickException(str(exc)) from None
    finally:
        store.unlock()
    click.echo(f"Wrote {written:,} ids to {store.path}.")


@cli.command()
@pool_options
def status(config_path: Path, filename: str | None) -> None:
    """Show the pool layout and how many cycles the pool file can still serve."""
    from idpool.core.clock import CycleClock
    from idpool.core.store import IdPoolError, PoolStore

    config = _resolve_config(config_path, filename=filename)
    clock = CycleClock(config.cycle_duration, config.unit_duration)
    store = PoolStore(Path(config.filename))

    click.echo(f"Pool file       : {store.path}")
    click.echo(f"Cycle duration  : {config.cycle_duration}")
    click.echo(f"Unit duration   : {config.unit_duration}")
    click.echo(f"Buckets / cycle : {config.id_map_length:,}")
    click.echo(f"Current cycle   : {clock.cycle_start(0).isoformat()}")
    click.echo(f"Current key     : {clock.current_key()}")

    if not store.exists():
        click.echo("Pool size       : (no pool file)")
        return

    try:
        size = len(store.read())
    except (IdPoolError, OSError) as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Pool size       : {size:,}")
    click.echo(f"Full cycles left: {size // config.id_map_length:,}")


@cli.command()
@pool_options
@click.option("--key", type=int, default=None, help="Unit key to resolve.")
@click.option(
    "--at",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]),
    default=None,
    help="UTC instant to resolve instead of now.",
)
def peek(config_path: Path, filename: str | None, key: int | None, at: datetime | None) -> None:
    """Print the identifier bound to a unit of the current cycle without consuming it.

    The pool file is only read, so this works while another process owns it.
    Consumption lives in the owner's memory until rollover, which means an id
    shown as available may already have been handed out this cycle.
    """
    from idpool.core.clock import CycleClock
    from idpool.core.models import Lookup, LookupStatus
    from idpool.core.store import IdPoolError, PoolStore

    config = _resolve_config(config_path, filename=filename)
    store = PoolStore(Path(config.filename))
    if not store.exists():
        click.echo(f"No pool file at {store.path}; run 'idpool init' first.")
        raise SystemExit(1)

    clock = CycleClock(config.cycle_duration, config.unit_duration)
    try:
        _, buckets = store.load(clock.unit_key(clock.cycle_start(0)), config.id_map_length)
    except (IdPoolError, OSError) as exc:
        raise click.ClickException(str(exc)) from None

    if key is None:
        key = clock.unit_key(at) if at is not None else clock.current_key()

    id_ = buckets.get(key)
    if id_ is None:
        result = Lookup(key=key, status=LookupStatus.missing)
    else:
        result = Lookup(key=key, status=LookupStatus.available, id=id_)
    click.echo(f"{key}\t{result.status.value}\t{result.id}")


@cli.command()
@pool_options
@click.option("--json-logs", is_flag=True, default=False, help="Output logs as JSON.")
@click.option(
    "--metrics-port",
    type=int,
    default=0,
    help="Prometheus metrics port (0=disabled).",
)
def run(config_path: Path, filename: str | None, json_logs: bool, metrics_port: int) -> None:
    """Own the pool file and roll it over at every cycle boundary.

    The process takes the pool's ownership lock and refuses to start while
    another allocator holds it.
    """
    import anyio

    from idpool.core.allocator import Allocator
    from idpool.core.logging import configure_logging
    from idpool.core.runtime import CycleRunner
    from idpool.core.store import IdPoolError

    configure_logging(json_output=json_logs)
    config = _resolve_config(config_path, filename=filename)

    if metrics_port > 0:
        from idpool.metrics.server import start_metrics_server

        start_metrics_server(metrics_port)

    with Allocator(config) as allocator:
        try:
            allocator.initialize()
        except (IdPoolError, OSError) as exc:
            raise click.ClickException(str(exc)) from None

        runner = CycleRunner(allocator)
        anyio.run(_serve, runner)


async def _serve(runner: Any) -> None:
    import signal

    import anyio

    async def _watch_signals() -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for _ in signals:
                runner.stop()
                return

    async with anyio.create_task_group() as tg:
        tg.start_soon(_watch_signals)
        await runner.run()
        tg.cancel_scope.cancel()
