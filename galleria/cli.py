"""Galleria command line interface.

Commands:
    galleria serve               Run the API with uvicorn
    galleria db rls-sql          Print the row level security DDL
    galleria db seed-roles       Insert the built-in roles (idempotent)
    galleria tenants list        List tenants
    galleria tenants show        Show one tenant by slug
    galleria tenants create      Create a tenant
"""

import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from galleria import __version__
from galleria.config import ConfigError, GalleriaConfig, load_config_from_env
from galleria.db.rls import grant_statements, rls_statements
from galleria.db.session import Database
from galleria.errors import GalleriaError
from galleria.logging_config import configure_logging, get_logger
from galleria.services.role import RoleService
from galleria.services.tenant import TenantService, slugify

logger = get_logger(__name__)
console = Console()


def _config(ctx: click.Context) -> GalleriaConfig:
    return ctx.obj["config"]


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides GALLERIA_LOG_LEVEL)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "human"], case_sensitive=False),
    default=None,
    help="Log output format (overrides GALLERIA_LOG_FORMAT)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], log_format: Optional[str]) -> None:
    """Galleria - multi-tenant photo albums service."""
    try:
        config = load_config_from_env()
        config.validate()
    except ConfigError as e:
        raise click.ClickException(f"Config error: {e}") from e

    if log_level:
        config.logging.level = log_level
    if log_format:
        config.logging.format = log_format
    configure_logging(
        level=config.logging.level,
        json_output=config.logging.format == "json",
        log_file=config.logging.file,
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides GALLERIA_HOST)")
@click.option("--port", type=int, default=None, help="Port (overrides GALLERIA_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Run the HTTP API."""
    import uvicorn

    config = _config(ctx)
    uvicorn.run(
        "galleria.api.app:create_app",
        factory=True,
        host=host or config.server.host,
        port=port or config.server.port,
        reload=reload,
        log_config=None,
    )


@cli.group()
def db() -> None:
    """Database helpers."""


@db.command("rls-sql")
@click.option("--grant-role", default=None, help="Also print grants for this application role")
def rls_sql(grant_role: Optional[str]) -> None:
    """Print the row level security policy DDL."""
    for statement in rls_statements():
        click.echo(f"{statement};")
    if grant_role:
        for statement in grant_statements(grant_role):
            click.echo(f"{statement};")


async def _seed_roles(config: GalleriaConfig):
    database = Database.from_config(config.database)
    try:
        return await RoleService(database).seed_roles()
    finally:
        await database.dispose()


@db.command("seed-roles")
@click.pass_context
def seed_roles(ctx: click.Context) -> None:
    """Insert the built-in roles; existing ones are left alone."""
    roles = asyncio.run(_seed_roles(_config(ctx)))
    console.print(f"[green]Roles ready:[/green] {', '.join(role.name for role in roles)}")


@cli.group()
def tenants() -> None:
    """Tenant registry management."""


async def _list_tenants(config: GalleriaConfig, limit: Optional[int]):
    database = Database.from_config(config.database)
    try:
        return await TenantService(database).list(limit=limit)
    finally:
        await database.dispose()


async def _show_tenant(config: GalleriaConfig, slug: str):
    database = Database.from_config(config.database)
    try:
        return await TenantService(database).get_by_slug(slug)
    finally:
        await database.dispose()


async def _create_tenant(config: GalleriaConfig, name: str, slug: str, external_reference_id: Optional[str]):
    database = Database.from_config(config.database)
    try:
        return await TenantService(database).create(name, slug, external_reference_id)
    finally:
        await database.dispose()


@tenants.command("list")
@click.option("--limit", type=int, default=None, help="Maximum number of tenants to show")
@click.pass_context
def list_tenants(ctx: click.Context, limit: Optional[int]) -> None:
    """List tenants."""
    rows = asyncio.run(_list_tenants(_config(ctx), limit))
    if not rows:
        console.print("[dim]No tenants[/dim]")
        return

    table = Table(title="Tenants")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Slug")
    table.add_column("External reference")
    for tenant in rows:
        table.add_row(str(tenant.id), tenant.name, tenant.slug, tenant.external_reference_id or "")
    console.print(table)


@tenants.command("show")
@click.argument("slug")
@click.pass_context
def show_tenant(ctx: click.Context, slug: str) -> None:
    """Show the tenant with SLUG."""
    try:
        tenant = asyncio.run(_show_tenant(_config(ctx), slug))
    except GalleriaError as e:
        raise click.ClickException(e.message) from e
    console.print(f"[bold]{tenant.name}[/bold] ({tenant.slug}) [dim]{tenant.id}[/dim]")
    if tenant.external_reference_id:
        console.print(f"External reference: {tenant.external_reference_id}")


@tenants.command("create")
@click.argument("name")
@click.argument("slug", required=False)
@click.option("--external-id", default=None, help="Identity provider organization id")
@click.pass_context
def create_tenant(ctx: click.Context, name: str, slug: Optional[str], external_id: Optional[str]) -> None:
    """Create a tenant. SLUG defaults to one derived from NAME."""
    slug = slug or slugify(name)
    try:
        tenant = asyncio.run(_create_tenant(_config(ctx), name, slug, external_id))
    except GalleriaError as e:
        raise click.ClickException(e.message) from e
    console.print(f"[green]Created tenant[/green] {tenant.name} ({tenant.slug}) [dim]{tenant.id}[/dim]")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
