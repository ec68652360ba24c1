"""Command-line interface for vaultpool.

Lets operators validate a rotation configuration file, verify it against
Vault, preview the refresh delay a lease policy produces, and run a pool under rotation in the
foreground.
"""

import threading
from typing import Optional

import click

from vaultpool import __version__
from vaultpool.config import ConfigManager
from vaultpool.rotation import APSchedulerTimer, RefreshScheduler
from vaultpool.config.validator import ConfigValidator
from vaultpool.secrets import FractionLeasePolicy, MarginLeasePolicy, check_interval, refresh_delay
from vaultpool.utils.errors import ErrorHandler, FatalConfigError, SecretBackendError, create_error_suggestions
from vaultpool.utils.logging import setup_logging

_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to the rotation configuration file",
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--log-file", help="Log to file in addition to console")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_file: Optional[str]) -> None:
    """vaultpool - Vault credential rotation for database connection pools.

    Args:
        ctx: Click context object containing shared state
        verbose: Enable verbose output for detailed logging
        log_file: Optional path to log file for additional logging
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["error_handler"] = ErrorHandler(verbose=verbose)

    setup_logging(verbose=verbose, log_file=log_file)


@cli.command()
@_config_option
@click.pass_context
def check(ctx: click.Context, config_path: str) -> None:
    """Fetch credentials once and report the lease, without starting a pool."""
    error_handler = ctx.obj["error_handler"]

    try:
        manager = ConfigManager(config_path)
        settings = manager.get_rotation_settings()
        policy = manager.build_policy()
        backend = manager.build_backend()

        credential, lease = backend.read_credentials(settings["secret_path"])
        delay_ms = refresh_delay(policy, lease.duration_ms, settings["retry_delay_ms"])
    except SecretBackendError as e:
        kind = "vault_access_denied" if e.is_auth_denied else "vault_unreachable"
        error = FatalConfigError(
            f"Could not fetch database credentials for role {settings['role']}",
            details=e.message,
            suggestions=create_error_suggestions(kind, role=settings["role"]),
        )
        error_handler.exit_with_error(error, context="credential check")
        return
    except Exception as e:
        error_handler.exit_with_error(e, context="credential check")
        return

    click.echo(f"✓ Fetched credentials from {settings['secret_path']}")
    click.echo(f"  Username:       {credential.username}")
    click.echo(f"  Lease ID:       {lease.lease_id or '-'}")
    click.echo(f"  Lease duration: {lease.duration_seconds}s")
    click.echo(f"  Next refresh:   {delay_ms / 1000:g}s ({policy!r})")


@cli.command()
@_config_option
@click.pass_context
def validate(ctx: click.Context, config_path: str) -> None:
    """Validate a rotation configuration file without contacting Vault."""
    try:
        errors = ConfigValidator().validate_config_file(config_path)
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, context="configuration validation")
        return

    if not errors:
        click.echo(f"✓ Configuration is valid: {config_path}")
        return

    click.echo(f"✗ Configuration is invalid: {config_path}", err=True)
    for error in errors:
        click.echo(f"  - {error}", err=True)
    ctx.exit(1)


@cli.command()
@_config_option
@click.pass_context
def run(ctx: click.Context, config_path: str) -> None:
    """Start a connection pool under credential rotation and keep it running."""
    error_handler = ctx.obj["error_handler"]
    timer = APSchedulerTimer()

    try:
        manager = ConfigManager(config_path)
        settings = manager.get_rotation_settings()
        scheduler = RefreshScheduler(
            manager.build_backend(),
            timer,
            retry_delay_ms=settings["retry_delay_ms"],
        )
        timer.start()
        pool = scheduler.attach(manager.build_pool_config(), settings["secret_path"], manager.build_policy())
    except Exception as e:
        timer.shutdown(wait=False)
        error_handler.exit_with_error(e, context="starting credential rotation")
        return

    click.echo(f"✓ Credential rotation running for {settings['secret_path']} (Ctrl+C to stop)")

    stopped = threading.Event()
    try:
        while not pool.is_closed():
            stopped.wait(1.0)
    except KeyboardInterrupt:
        click.echo("\nStopping credential rotation...")
    finally:
        pool.close()
        timer.shutdown()

    click.echo("✓ Connection pool closed")


@cli.command()
@click.option("--lease-seconds", required=True, type=click.IntRange(min=0), help="Lease duration in seconds")
@click.option("--margin-ms", type=click.IntRange(min=1), help="Refresh this long before expiry")
@click.option(
    "--fraction",
    type=click.FloatRange(min=0, max=1, min_open=True, max_open=True),
    help="Refresh after this fraction of the lease",
)
@click.pass_context
def policy(ctx: click.Context, lease_seconds: int, margin_ms: Optional[int], fraction: Optional[float]) -> None:
    """Show when the next refresh would fire for a lease."""
    if margin_ms is not None and fraction is not None:
        raise click.BadParameter("Cannot use both --margin-ms and --fraction options")

    if fraction is not None:
        lease_policy = FractionLeasePolicy(fraction)
    elif margin_ms is not None:
        lease_policy = MarginLeasePolicy(margin_ms)
    else:
        lease_policy = MarginLeasePolicy()

    try:
        delay_ms = check_interval(lease_policy, lease_seconds * 1000)
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, context="computing refresh interval")
        return

    click.echo(f"{lease_policy!r}: refresh after {delay_ms}ms for a {lease_seconds}s lease")


if __name__ == "__main__":
    cli()
