"""Operator command line for Staffline.

Talks to Supabase with the service-role key from the environment (or a
``.env`` file in the working directory).

Usage:
    staffline promote-admin alice@example.com
    staffline invite bob@example.com "Bob Smith" --as alice@example.com
    staffline stats --as alice@example.com
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

from staffline.access import Actor, Role, SecurityContext
from staffline.audit import GatewayAuditLog
from staffline.config import MarketplaceConfig
from staffline.errors import StafflineError
from staffline.gateway.base import PROFILES_TABLE, DataGateway, get_one
from staffline.gateway.supabase import create_gateway
from staffline.invites import InviteService
from staffline.profiles import AccountService

logger = logging.getLogger("staffline.cli")


async def _connect() -> DataGateway:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SECRET_KEY") or os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SECRET_KEY (or SUPABASE_SERVICE_ROLE_KEY) must be set")
    return await create_gateway(url, key, SecurityContext.SERVICE)


async def _admin_actor(gateway: DataGateway, email: str) -> Actor:
    row = await get_one(gateway, PROFILES_TABLE, {"email": email.strip().lower()})
    if row is None or row.get("role") != Role.ADMIN.value:
        raise ValueError(f"{email} is not an admin account")
    return Actor(user_id=row["id"], role=Role.ADMIN, email=row.get("email"))


async def cmd_promote_admin(args, gateway: DataGateway):
    accounts = AccountService(gateway, GatewayAuditLog(gateway))
    profile = await accounts.promote_to_admin(args.email)
    print(f"✓ {profile.email} is now an admin ({profile.id})")


async def cmd_invite(args, gateway: DataGateway):
    actor = await _admin_actor(gateway, args.as_admin)
    invites = InviteService(gateway, GatewayAuditLog(gateway), MarketplaceConfig.from_env())
    invite = await invites.create_invite(actor, args.email, args.full_name)
    base_url = args.base_url or os.environ.get("INVITE_BASE_URL", "http://localhost:5173")
    print(f"✓ Invite created for {invite.email}")
    print(f"  Expires: {invite.expires_at.isoformat()}")
    print(f"  Link: {invite.onboarding_url(base_url)}")


async def cmd_stats(args, gateway: DataGateway):
    actor = await _admin_actor(gateway, args.as_admin)
    accounts = AccountService(gateway, GatewayAuditLog(gateway))
    stats = await accounts.admin_stats(actor)
    if args.json:
        print(json.dumps(stats, indent=2, default=str))
        return
    for key, value in stats.items():
        print(f"{key.replace('_', ' ')}: {value}")


COMMANDS = {
    "promote-admin": cmd_promote_admin,
    "invite": cmd_invite,
    "stats": cmd_stats,
}


async def _run(args):
    gateway = await _connect()
    await COMMANDS[args.command](args, gateway)


def main(argv=None):
    load_dotenv()
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING"), format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(prog="staffline", description="Staffline operator tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_promote = subparsers.add_parser("promote-admin", help="Grant the admin role to an existing account")
    p_promote.add_argument("email", help="Account email")

    p_invite = subparsers.add_parser("invite", help="Invite an expert")
    p_invite.add_argument("email", help="Invitee email")
    p_invite.add_argument("full_name", help="Invitee full name")
    p_invite.add_argument("--as", dest="as_admin", required=True, help="Email of the issuing admin")
    p_invite.add_argument("--base-url", help="Frontend origin for the onboarding link")

    p_stats = subparsers.add_parser("stats", help="Show platform counts")
    p_stats.add_argument("--as", dest="as_admin", required=True, help="Email of an admin account")
    p_stats.add_argument("--json", "-j", action="store_true")

    args = parser.parse_args(argv)

    try:
        asyncio.run(_run(args))
    except (ValueError, StafflineError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
