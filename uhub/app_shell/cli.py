import argparse
import logging
import os
import sys

from uhub.api.deps import Settings
from uhub.app_shell.config import validate_startup
from uhub.app_shell.context import ServiceContext
from uhub.components.invitations import validate_acceptance
from uhub.domain.entities import Principal, ProfileFields, Role
from uhub.domain.errors import UHubError

logger = logging.getLogger("uhub.cli")


def get_context(settings: Settings) -> ServiceContext:
    try:
        rules = validate_startup(settings)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Startup failed: %s", e)
        sys.exit(1)
    return ServiceContext.create(settings, rules)


def handle_issue(ctx: ServiceContext, args: argparse.Namespace) -> None:
    timeout = ctx.rules.provisioning.store_timeout_seconds
    inviter = ctx.profiles.get_by_email(args.inviter_email.strip().lower(), timeout=timeout)
    if not inviter:
        logger.error(
            "Inviter %s not found. Use the email of an existing manager.", args.inviter_email
        )
        sys.exit(1)

    issued = ctx.invitations.issue(
        Principal(id=inviter.id, role=inviter.role.value),
        args.email,
        args.role,
        args.department,
    )
    print(f"Invitation created for {issued.invitation.email} as '{issued.invitation.role.value}'.")
    print(f"Expires: {issued.invitation.expires_at.isoformat()}")
    print(f"Token: {issued.token}")
    print(f"Link: /invite/{issued.token}")


def handle_cleanup(ctx: ServiceContext, args: argparse.Namespace) -> None:
    deleted = ctx.invitations.cleanup_expired()
    print(f"Deleted {deleted} expired invitations.")


def handle_expire(ctx: ServiceContext, args: argparse.Namespace) -> None:
    expired = ctx.invitations.expire_overdue()
    print(f"Marked {expired} invitations as expired.")


def handle_bootstrap_admin(ctx: ServiceContext, args: argparse.Namespace) -> None:
    """Create the first administrator directly, without an invitation."""
    password = args.password or os.environ.get("UHUB_BOOTSTRAP_PASSWORD", "")
    fields = ProfileFields(full_name=args.full_name)
    validate_acceptance(password, fields, ctx.rules.accounts)

    email = args.email.strip().lower()
    timeout = ctx.rules.provisioning.store_timeout_seconds
    if ctx.profiles.get_by_email(email, timeout=timeout):
        logger.error("A profile for %s already exists.", email)
        sys.exit(1)

    account = ctx.provisioner.provision(email, password, fields, role=Role.ADMIN)
    print(f"Administrator {email} created with id {account.id}.")


def handle_roles(ctx: ServiceContext, args: argparse.Namespace) -> None:
    for role in ctx.resolver.catalog.roles():
        print(f"{role.level}  {role.name.value:<18} {role.label}")


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="UHub access administration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # issue
    issue_parser = subparsers.add_parser("issue", help="Issue an invitation")
    issue_parser.add_argument("email", help="Email address of the invitee")
    issue_parser.add_argument("role", help="Role to assign on acceptance")
    issue_parser.add_argument("--department", help="Department of the invitee")
    issue_parser.add_argument(
        "--inviter-email", required=True, help="Email of the manager issuing the invitation"
    )

    # cleanup
    subparsers.add_parser("cleanup", help="Delete expired invitations")

    # expire
    subparsers.add_parser("expire", help="Mark overdue pending invitations as expired")

    # migrate
    subparsers.add_parser("migrate", help="Apply database migrations and check rules")

    # bootstrap-admin
    bootstrap_parser = subparsers.add_parser("bootstrap-admin", help="Create the first admin")
    bootstrap_parser.add_argument("email")
    bootstrap_parser.add_argument("--full-name", required=True)
    bootstrap_parser.add_argument(
        "--password", help="Defaults to $UHUB_BOOTSTRAP_PASSWORD"
    )

    # roles
    subparsers.add_parser("roles", help="List roles and their levels")

    args = parser.parse_args()

    settings = Settings()
    ctx = get_context(settings)

    handlers = {
        "issue": handle_issue,
        "cleanup": handle_cleanup,
        "expire": handle_expire,
        "bootstrap-admin": handle_bootstrap_admin,
        "roles": handle_roles,
    }
    handler = handlers.get(args.command)
    if handler is None:
        # migrate: get_context already applied migrations
        print("Migrations applied.")
        return

    try:
        handler(ctx, args)
    except UHubError as e:
        logger.error("%s: %s", e.kind.value, e.message)
        sys.exit(2 if e.retryable else 1)


if __name__ == "__main__":
    main()
