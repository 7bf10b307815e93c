#!/usr/bin/env python3
"""
Slate CLI.

Operations entry point: serve the API, check that configuration and the
database are reachable, run migrations and mint development session
tokens. Use --service to select what to run.

Usage:
    python cli.py --help
    python cli.py --service server --reload --verbose
    python cli.py --service health
    python cli.py --service config
    python cli.py --service migrate --migrate-action upgrade
    python cli.py --service token --user-id alice --email alice@example.com
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

import click
import structlog

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from slate.backend.core.logging import get_logger, setup_logging

SERVICES = ["server", "health", "config", "info", "migrate", "token"]


def validate_project_root() -> Path:
    """Validate that the checkout carries its .project_root marker."""
    if not (PROJECT_ROOT / ".project_root").exists():
        click.echo(
            click.style("Error: .project_root not found. Run from project root.", fg="red"),
            err=True,
        )
        sys.exit(1)
    return PROJECT_ROOT


def _fail(logger, message: str, error: Exception | None = None) -> None:
    if error is not None:
        logger.error(message, extra={"error": str(error)})
        message = f"{message}: {error}"
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


@click.command()
@click.option(
    "--service", "-s",
    type=click.Choice(SERVICES),
    default="info",
    help="Service or command to run.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output (INFO level logging).")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output (DEBUG level logging).")
@click.option("--host", default=None, help="Server host (server only).")
@click.option("--port", default=None, type=int, help="Server port (server only).")
@click.option("--reload", is_flag=True, help="Enable auto-reload (server only).")
@click.option(
    "--migrate-action",
    type=click.Choice(["upgrade", "downgrade", "current", "history", "autogenerate"]),
    default="current",
    help="Migration action.",
)
@click.option("--revision", default="head", help="Target revision for upgrade/downgrade.")
@click.option("-m", "--message", default=None, help="Migration message (for autogenerate).")
@click.option("--user-id", default=None, help="Subject of the session token (token only).")
@click.option("--email", default=None, help="Email claim of the session token (token only).")
@click.option(
    "--expires-minutes",
    default=None,
    type=int,
    help="Session token lifetime in minutes (token only).",
)
def main(
    service: str,
    verbose: bool,
    debug: bool,
    host: str | None,
    port: int | None,
    reload: bool,
    migrate_action: str,
    revision: str,
    message: str | None,
    user_id: str | None,
    email: str | None,
    expires_minutes: int | None,
) -> None:
    """
    Slate CLI.

    \b
    Examples:
        python cli.py --service server --reload --verbose
        python cli.py --service health --debug
        python cli.py --service migrate --migrate-action upgrade
        python cli.py --service migrate --migrate-action autogenerate -m "add note index"
        python cli.py --service token --user-id alice --expires-minutes 60
    """
    validate_project_root()

    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(level=log_level, format_type="console")
    structlog.contextvars.bind_contextvars(source="cli")
    logger = get_logger(__name__)
    logger.debug("CLI invoked", extra={"service": service, "log_level": log_level})

    if service == "server":
        run_server(logger, host, port, reload)
    elif service == "health":
        check_health(logger)
    elif service == "config":
        show_config(logger)
    elif service == "info":
        show_info(logger)
    elif service == "migrate":
        run_migrations(logger, migrate_action, revision, message)
    elif service == "token":
        issue_token(logger, user_id, email, expires_minutes)


def run_server(logger, host: str | None, port: int | None, reload: bool) -> None:
    """Serve slate.backend.main:app with uvicorn."""
    import uvicorn

    from slate.backend.core.config import get_app_config

    try:
        server_config = get_app_config().application.server
    except Exception as e:
        _fail(logger, "Could not load config/settings/application.yaml", e)

    server_host = host or server_config.host
    server_port = port or server_config.port
    logger.info("Starting server", extra={"host": server_host, "port": server_port, "reload": reload})
    click.echo(f"Serving Slate at http://{server_host}:{server_port}/api/v1")

    uvicorn.run(
        "slate.backend.main:app",
        host=server_host,
        port=server_port,
        reload=reload,
        log_config=None,
    )


async def _database_status() -> dict:
    from slate.backend.api.health import check_database
    from slate.backend.core.database import dispose_engine

    try:
        return await check_database()
    finally:
        await dispose_engine()


def check_health(logger) -> None:
    """Check configuration, secrets, feature flags and database connectivity."""
    from slate.backend.core.config import get_app_config, get_settings

    click.echo("Checking Slate health...\n")
    checks: list[tuple[str, bool, str | None]] = []

    try:
        app_config = get_app_config()
        checks.append(("YAML configuration", True, f"{app_config.application.name} {app_config.application.version}"))
    except Exception as e:
        _fail(logger, "Configuration failed", e)

    try:
        settings = get_settings()
        parser_state = "configured" if settings.openai_api_key else "no API key"
        checks.append(("Secrets (config/.env)", True, f"Parser: {parser_state}"))
    except Exception as e:
        logger.warning("Secrets not configured", extra={"error": str(e)})
        checks.append(("Secrets (config/.env)", False, str(e)))

    features = app_config.features
    enabled = [name for name, value in features.model_dump().items() if value is True]
    checks.append(("Feature flags", True, ", ".join(enabled) or "none enabled"))

    database = asyncio.run(_database_status())
    if database["status"] == "healthy":
        checks.append(("Database", True, f"{database['latency_ms']} ms"))
    else:
        checks.append(("Database", False, database.get("error")))

    click.echo("Health Check Results:")
    click.echo("-" * 50)
    for name, passed, detail in checks:
        status = click.style("✓ PASS", fg="green") if passed else click.style("✗ FAIL", fg="red")
        detail_str = f" ({detail})" if detail else ""
        click.echo(f"  {status}  {name}{detail_str}")
    click.echo("-" * 50)

    if all(passed for _, passed, _ in checks):
        click.echo(click.style("\nAll checks passed!", fg="green"))
        return
    click.echo(click.style("\nSome checks failed. See details above.", fg="yellow"))
    sys.exit(1)


def _echo_section(title: str, values: dict) -> None:
    click.echo(f"\n{title}:")
    click.echo("-" * 40)
    for key, value in values.items():
        if isinstance(value, dict):
            click.echo(f"  {key}:")
            for k, v in value.items():
                click.echo(f"    {k}: {v}")
        else:
            click.echo(f"  {key}: {value}")


def show_config(logger) -> None:
    """Display the loaded YAML configuration. Secrets are never printed."""
    click.echo("Application Configuration:")

    try:
        from slate.backend.core.config import get_app_config

        app_config = get_app_config()
    except Exception as e:
        _fail(logger, "Failed to load configuration", e)

    _echo_section("Application Settings (from YAML)", app_config.application.model_dump())
    _echo_section("Database Settings (from YAML)", app_config.database.model_dump())
    _echo_section("Logging Settings (from YAML)", app_config.logging.model_dump())
    _echo_section("Feature Flags (from YAML)", app_config.features.model_dump())
    _echo_section("Intake Settings (from YAML)", app_config.intake.model_dump())
    _echo_section("Embedding Sink (from YAML)", app_config.embeddings.model_dump())
    logger.info("Configuration displayed")


def run_migrations(logger, migrate_action: str, revision: str, message: str | None) -> None:
    """Run Alembic commands against the configured database."""
    from alembic import command
    from alembic.config import Config
    from alembic.util import CommandError

    alembic_ini = PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        _fail(logger, "alembic.ini not found")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(PROJECT_ROOT / "slate" / "backend" / "migrations"))
    logger.info("Running migrations", extra={"action": migrate_action, "revision": revision})

    try:
        if migrate_action == "upgrade":
            click.echo(f"Upgrading database to revision: {revision}")
            command.upgrade(config, revision)
        elif migrate_action == "downgrade":
            click.echo(f"Downgrading database to revision: {revision}")
            command.downgrade(config, revision)
        elif migrate_action == "current":
            command.current(config, verbose=True)
        elif migrate_action == "history":
            command.history(config, verbose=True)
        elif migrate_action == "autogenerate":
            if not message:
                _fail(logger, "--message/-m required for autogenerate")
            click.echo(f"Generating migration: {message}")
            command.revision(config, message=message, autogenerate=True)
    except CommandError as e:
        _fail(logger, "Migration failed", e)

    logger.info("Migration completed", extra={"action": migrate_action})


def issue_token(logger, user_id: str | None, email: str | None, expires_minutes: int | None) -> None:
    """
    Print a session token for local development.

    Sessions normally come from the identity provider. This signs one with
    the configured JWT secret so the session-only routes (/keys, /trash)
    can be exercised by hand.
    """
    if not user_id:
        _fail(logger, "--user-id required for token")

    from slate.backend.core.security import create_access_token

    claims = {"sub": user_id}
    if email:
        claims["email"] = email
    expires = timedelta(minutes=expires_minutes) if expires_minutes else None
    try:
        token = create_access_token(claims, expires_delta=expires)
    except Exception as e:
        _fail(logger, "Failed to issue token", e)

    logger.info("Session token issued", extra={"user_id": user_id})
    click.echo(token)


def show_info(logger) -> None:
    """Display application information."""
    try:
        from slate.backend.core.config import get_app_config

        application = get_app_config().application
    except Exception as e:
        _fail(logger, "Could not load application.yaml configuration", e)

    click.echo(application.name)
    click.echo("=" * 40)
    click.echo(f"Name: {application.name}")
    click.echo(f"Version: {application.version}")
    click.echo(f"Description: {application.description}")
    click.echo()
    click.echo("Services (--service):")
    click.echo("  server         Serve the HTTP API")
    click.echo("  health         Check configuration and database")
    click.echo("  config         Display configuration")
    click.echo("  migrate        Database migrations")
    click.echo("  token          Issue a development session token")
    click.echo("  info           Show this information")
    click.echo()
    click.echo("Options:")
    click.echo("  --verbose, -v  Enable INFO level logging")
    click.echo("  --debug, -d    Enable DEBUG level logging")
    logger.debug("Info displayed")


if __name__ == "__main__":
    main()
