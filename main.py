#!/usr/bin/env python3
"""
TenantNotes — operator CLI for provisioning tenants and users.

Tenants are never created over the HTTP API. Use this tool against the same
database the API server uses.

Usage:
  python main.py create-tenant acme "Acme Corporation"
  python main.py create-tenant globex "Globex Corporation" --plan pro
  python main.py create-user admin@acme.test --tenant acme --role admin
  python main.py list-users acme
  python main.py seed-demo

Environment variables:
  AUTH_DATABASE_URL   SQLAlchemy URL of the tenant/user database.
                      Defaults to auth/tenantnotes_auth.db.
  DEBUG / SECRET_KEY  Read by the shared settings loader; set DEBUG=true for
                      local use without a SECRET_KEY.
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.provisioning import DEMO_PASSWORD, provision_tenant, provision_user, seed_demo
from auth.store import UniqueViolation, UserStore
from core.config import get_settings
from core.models import Plan, Role


def _open_store() -> UserStore:
    settings = get_settings()
    return UserStore(settings.auth_database_url, timeout=settings.db_timeout_seconds)


def _read_password(given: Optional[str]) -> str:
    """Prompt twice for a password unless one was passed on the command line."""
    if given:
        return given
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        sys.exit(1)
    if len(first) < 8:
        print("  [!] Password must be at least 8 characters.")
        sys.exit(1)
    return first


def _cmd_create_tenant(store: UserStore, args: argparse.Namespace) -> int:
    try:
        tenant = provision_tenant(store, args.slug, args.name, plan=args.plan)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1
    except UniqueViolation:
        print(f"  [!] Tenant '{args.slug}' already exists.")
        return 1
    print(f"  Created tenant {tenant.slug} (id={tenant.id}, plan={tenant.plan}).")
    return 0


def _cmd_create_user(store: UserStore, args: argparse.Namespace) -> int:
    password = _read_password(args.password)
    try:
        user = provision_user(store, args.email, password, args.role, args.tenant)
    except LookupError:
        print(f"  [!] Tenant '{args.tenant}' does not exist. Create it first with create-tenant.")
        return 1
    except UniqueViolation:
        print(f"  [!] A user with email '{args.email}' already exists.")
        return 1
    print(f"  Created {user.role} {user.email} in tenant {args.tenant} (id={user.id}).")
    return 0


def _cmd_list_users(store: UserStore, args: argparse.Namespace) -> int:
    tenant = store.get_tenant_by_slug(args.slug)
    if tenant is None:
        print(f"  [!] Tenant '{args.slug}' does not exist.")
        return 1
    print(f"\n  {tenant.name} ({tenant.slug}) — plan: {tenant.plan}")
    print("  " + "─" * 40)
    for user in store.list_users(tenant.id):
        print(f"  {user.email:<32} {user.role:<8} last login: {user.last_login or 'never'}")
    print()
    return 0


def _cmd_seed_demo(store: UserStore, args: argparse.Namespace) -> int:
    created = seed_demo(store)
    if created:
        print(f"  Seeded {created} demo record(s). Every demo user's password is '{DEMO_PASSWORD}'.")
    else:
        print("  Demo data already present.")
    return 0


_COMMANDS = {
    "create-tenant": _cmd_create_tenant,
    "create-user": _cmd_create_user,
    "list-users": _cmd_list_users,
    "seed-demo": _cmd_seed_demo,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tenantnotes",
        description="Provision TenantNotes tenants and users.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-tenant acme "Acme Corporation"
  python main.py create-user admin@acme.test --tenant acme --role admin
  python main.py seed-demo
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("create-tenant", help="Create a tenant")
    p.add_argument("slug", help="URL-safe identifier, immutable once created")
    p.add_argument("name", help="Display name")
    p.add_argument("--plan", choices=[plan.value for plan in Plan], default=Plan.free.value, help="Initial plan (default: free)")

    p = sub.add_parser("create-user", help="Create a user inside an existing tenant")
    p.add_argument("email")
    p.add_argument("--tenant", required=True, metavar="SLUG", help="Slug of the owning tenant")
    p.add_argument("--role", choices=[role.value for role in Role], default=Role.member.value, help="Role (default: member)")
    p.add_argument("--password", help="Password (prompted for when omitted)")

    p = sub.add_parser("list-users", help="List the users of a tenant")
    p.add_argument("slug")

    sub.add_parser("seed-demo", help="Create the acme/globex demo tenants and users")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    store = _open_store()
    try:
        return _COMMANDS[args.command](store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
