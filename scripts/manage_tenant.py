"""CLI for tenant management.

Usage::

    uv run python -m scripts.manage_tenant <command> [options]

Commands:
    create-tenant       Create a new tenant
    random-identifier   Suggest a random tenant identifier
    list-tenants        List all non-deleted tenants
    rename-tenant       Change a tenant's identifier
    delete-tenant       Soft-delete a tenant
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from collections.abc import Awaitable, Callable
from typing import NoReturn

from multitenancy.config import get_settings
from multitenancy.errors import TenantError
from multitenancy.services.tenant_service import TenantService
from multitenancy.storage.database import create_engine, create_session_factory
from multitenancy.storage.isolation import TenantIsolation

Command = Callable[[TenantService, argparse.Namespace], Awaitable[None]]


def _fail(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    sys.exit(1)


async def create_tenant(service: TenantService, args: argparse.Namespace) -> None:
    """Create a new tenant (random identifier when none is given)."""
    identifier = args.identifier or service.get_random_identifier()
    try:
        tenant = await service.create(identifier)
    except TenantError as exc:
        _fail(str(exc))
    print(f"Tenant created: {tenant.identifier} (id: {tenant.id})")


async def random_identifier(service: TenantService, _args: argparse.Namespace) -> None:
    """Print an identifier candidate."""
    print(service.get_random_identifier())


async def list_tenants(service: TenantService, _args: argparse.Namespace) -> None:
    """List all non-deleted tenants."""
    try:
        tenants = await service.list_active()
    except TenantError as exc:
        _fail(str(exc))

    if not tenants:
        print("No tenants found.")
        return

    print("Tenants:")
    for i, tenant in enumerate(tenants, 1):
        print(f"  {i}. {tenant.identifier} (id: {tenant.id})")


async def rename_tenant(service: TenantService, args: argparse.Namespace) -> None:
    """Change a tenant's identifier."""
    try:
        tenant = await service.update(uuid.UUID(args.id), args.identifier)
    except (TenantError, ValueError) as exc:
        _fail(str(exc))
    print(f"Tenant renamed: {tenant.identifier} (id: {tenant.id})")


async def delete_tenant(service: TenantService, args: argparse.Namespace) -> None:
    """Soft-delete a tenant."""
    try:
        await service.delete(uuid.UUID(args.id))
    except (TenantError, ValueError) as exc:
        _fail(str(exc))
    print(f"Tenant deleted: {args.id}")


async def run(command: Command, args: argparse.Namespace) -> None:
    """Open a session against the configured database and run one command."""
    settings = get_settings()
    engine = create_engine(settings)
    session_factory = create_session_factory(
        engine,
        TenantIsolation(manage_tenant_entity=settings.manage_tenant_entity),
    )
    try:
        async with session_factory() as session:
            await command(TenantService(session), args)
    finally:
        await engine.dispose()


def main() -> None:
    """Parse arguments and dispatch to command handler."""
    parser = argparse.ArgumentParser(description="Tenant management CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    # create-tenant
    p = sub.add_parser("create-tenant", help="Create a new tenant")
    p.add_argument("--identifier", help="Tenant identifier (random if omitted)")

    # random-identifier
    sub.add_parser("random-identifier", help="Suggest a tenant identifier")

    # list-tenants
    sub.add_parser("list-tenants", help="List all tenants")

    # rename-tenant
    p = sub.add_parser("rename-tenant", help="Change a tenant's identifier")
    p.add_argument("--id", required=True, help="Tenant id")
    p.add_argument("--identifier", required=True, help="New identifier")

    # delete-tenant
    p = sub.add_parser("delete-tenant", help="Soft-delete a tenant")
    p.add_argument("--id", required=True, help="Tenant id")

    args = parser.parse_args()
    commands: dict[str, Command] = {
        "create-tenant": create_tenant,
        "random-identifier": random_identifier,
        "list-tenants": list_tenants,
        "rename-tenant": rename_tenant,
        "delete-tenant": delete_tenant,
    }
    asyncio.run(run(commands[args.command], args))


if __name__ == "__main__":
    main()
