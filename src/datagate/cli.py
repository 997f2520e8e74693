"""Command-line interface for datagate.

Operator commands for initialising the database, checking access and
managing temporary permissions and delegations.
"""

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, NoReturn

import click

from datagate import __version__
from datagate.core.config import get_settings
from datagate.core.logging import (
    LoggingContext,
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)

OPERATIONS = ["create", "read", "update", "delete", "moderate", "publish"]


def _run(action: Callable[[Any], Awaitable[Any]]) -> Any:
    """Run an async action against a permission service, then dispose the engine.

    Log lines emitted while the action runs carry the command name and a
    fresh correlation ID.
    """
    from datagate.domain.services import DataPermissionService
    from datagate.infrastructure.persistence.database import get_db_manager

    command = click.get_current_context().info_name

    async def runner():
        bind_correlation_id(uuid.uuid4().hex)
        db = get_db_manager()
        try:
            with LoggingContext(command=command):
                service = DataPermissionService(db.session_factory, settings=db.settings)
                return await action(service)
        finally:
            await db.disconnect()
            clear_context()

    return asyncio.run(runner())


def _expiry(minutes: int | None, expires_at: datetime | None) -> datetime:
    from datagate.core.clock import ensure_utc, utc_now

    if expires_at is not None:
        return ensure_utc(expires_at)
    if minutes is None:
        raise click.UsageError("Provide --minutes or --expires-at")
    return utc_now() + timedelta(minutes=minutes)


def _echo_result(result: Any, success_message: str) -> None:
    if result:
        click.echo(success_message)
        return
    click.echo(f"ERROR: {result.reason}", err=True)
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="datagate")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides DATAGATE_LOG_LEVEL)",
)
def cli(log_level: str | None) -> None:
    """datagate - data permission engine for a blog platform."""
    settings = get_settings()
    if log_level is not None:
        settings = settings.model_copy(update={"log_level": log_level})
    configure_logging(settings)


@cli.command("init-db")
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Initialize the database.

    Creates all tables. Use this only in development; in production, run
    the migrations instead.
    """
    from datagate.infrastructure.persistence.database import (
        get_db_manager,
        init_database,
    )

    settings = get_settings()

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize():
        db = get_db_manager()
        try:
            await init_database(db)
            if settings.is_production:
                await db.create_tables()
            click.echo("Database initialized successfully.")
        finally:
            await db.disconnect()

    asyncio.run(initialize())


@cli.command()
@click.argument("user_id")
@click.argument("resource_type")
@click.argument("operation", type=click.Choice(OPERATIONS, case_sensitive=False))
@click.option("--resource-id", default=None, help="Target resource (omit for a type-level check)")
def check(user_id: str, resource_type: str, operation: str, resource_id: str | None) -> None:
    """Check whether USER_ID may perform OPERATION on RESOURCE_TYPE."""
    allowed = _run(
        lambda service: service.can_access_resource(user_id, resource_type, resource_id, operation)
    )
    click.echo("allowed" if allowed else "denied")
    if not allowed:
        raise SystemExit(1)


@cli.command()
@click.argument("user_id")
@click.argument("resource_type")
@click.argument("resource_id")
@click.argument("operation", type=click.Choice(OPERATIONS, case_sensitive=False))
@click.option("--minutes", type=click.IntRange(min=1), default=None, help="Lifetime in minutes")
@click.option("--expires-at", type=click.DateTime(), default=None, help="Expiry (UTC)")
@click.option("--granted-by", default=None, help="Granting user ID")
def grant(
    user_id: str,
    resource_type: str,
    resource_id: str,
    operation: str,
    minutes: int | None,
    expires_at: datetime | None,
    granted_by: str | None,
) -> None:
    """Grant USER_ID a temporary permission on one resource."""
    expiry = _expiry(minutes, expires_at)
    result = _run(
        lambda service: service.grant_temporary_permission(
            user_id, resource_type, resource_id, operation, expiry, granted_by
        )
    )
    _echo_result(result, f"Granted {operation} on {resource_type}/{resource_id} until {expiry.isoformat()}")


@cli.command()
@click.argument("user_id")
@click.argument("resource_type")
@click.argument("resource_id")
@click.argument("operation", type=click.Choice(OPERATIONS, case_sensitive=False))
def revoke(user_id: str, resource_type: str, resource_id: str, operation: str) -> None:
    """Revoke USER_ID's temporary permissions on one resource."""
    result = _run(
        lambda service: service.revoke_temporary_permission(
            user_id, resource_type, resource_id, operation
        )
    )
    _echo_result(result, f"Revoked {result.affected} temporary permission(s)")


@cli.command()
@click.argument("from_user_id")
@click.argument("to_user_id")
@click.argument("resource_type")
@click.argument("operation", type=click.Choice(OPERATIONS, case_sensitive=False))
@click.option("--resource-id", default=None, help="Target resource (omit for the whole type)")
@click.option("--minutes", type=click.IntRange(min=1), default=None, help="Lifetime in minutes")
@click.option("--expires-at", type=click.DateTime(), default=None, help="Expiry (UTC)")
def delegate(
    from_user_id: str,
    to_user_id: str,
    resource_type: str,
    operation: str,
    resource_id: str | None,
    minutes: int | None,
    expires_at: datetime | None,
) -> None:
    """Delegate a permission FROM_USER_ID holds to TO_USER_ID."""
    expiry = _expiry(minutes, expires_at)
    result = _run(
        lambda service: service.delegate_permission(
            from_user_id, to_user_id, resource_type, resource_id, operation, expiry
        )
    )
    _echo_result(result, f"Delegated {operation} on {resource_type} (rule {result.record_id})")


@cli.command()
@click.argument("user_id")
@click.option("--resource-type", default=None, help="Restrict to one resource type")
def scope(user_id: str, resource_type: str | None) -> None:
    """Show the data scope of USER_ID."""
    result = _run(lambda service: service.get_user_data_scope(user_id, resource_type))
    click.echo(f"User:   {user_id}")
    click.echo(f"Role:   {result.user_role.value if result.user_role else '-'}")
    click.echo(f"Scope:  {result.summary()}")


@cli.command()
def stats() -> None:
    """Display rule and temporary permission counts."""
    snapshot = _run(lambda service: service.get_permission_statistics())
    click.echo(f"""
Active rules:                {snapshot.active_rules_count}
Active temporary permissions: {snapshot.temporary_permissions_count}
""")


@cli.command()
def info() -> None:
    """Display datagate configuration."""
    settings = get_settings()
    logger = get_logger(__name__)
    logger.debug("Displaying configuration", environment=settings.environment)

    click.echo(f"""
datagate v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}

Database:
  URL:          {settings.database_url}
  Echo:         {settings.db_echo}

Cache TTLs (seconds):
  Access:       {settings.access_cache_ttl_seconds}
  Temporary:    {settings.temporary_access_cache_ttl_seconds}
  Scope:        {settings.scope_cache_ttl_seconds}
  Rules:        {settings.rules_cache_ttl_seconds}

Check timeout:  {settings.permission_check_timeout_seconds}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    Called when the `datagate` command is run or when using
    `python -m datagate`.
    """
    cli()


if __name__ == "__main__":
    main()
