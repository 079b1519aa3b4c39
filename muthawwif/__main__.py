"""Main entry point for the Muthawwif site."""

import argparse
import json
import sys

from loguru import logger

from .storage.models import ROLES, Profile
from .utils.config import get_config
from .utils.logger import setup_logging


def init_db():
    """Create the database schema."""
    from .storage.database import Database

    config = get_config()
    setup_logging()

    db = Database(config.database.url)
    logger.info(f"Database ready at {db.db_url}")


def run_analytics(range_days: int):
    """Print the analytics summary as JSON.

    Args:
        range_days: Period length in days
    """
    from .services.admin import AdminService
    from .storage.database import Database

    config = get_config()
    setup_logging(log_file="")

    admin = AdminService(Database(config.database.url), config)
    result = admin.analytics(range_days)
    if result.is_error:
        logger.error(f"Analytics failed: {result.error}")
    print(json.dumps(result.data, indent=2))


def set_role(email: str, role: str):
    """Change a user's role by e-mail.

    Args:
        email: Profile e-mail
        role: New role
    """
    from .storage.database import Database

    config = get_config()
    setup_logging()

    db = Database(config.database.url)
    profile = db.get_profile_by_email(email)
    if profile is None:
        logger.error(f"No profile with e-mail {email}")
        sys.exit(1)

    db.update(Profile, profile.id, {"role": role})
    logger.info(f"{email} is now {role}")


def run_api():
    """Run the FastAPI server."""
    import uvicorn

    config = get_config()
    setup_logging()

    logger.info("=" * 80)
    logger.info("Muthawwif Site API - Starting")
    logger.info("=" * 80)

    uvicorn.run(
        "muthawwif.api.main:create_app",
        factory=True,
        host=config.api.host,
        port=config.api.port,
        log_level="info",
    )


def main():
    """Main entry point."""
    config = get_config()
    parser = argparse.ArgumentParser(description="Muthawwif site")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # API command
    subparsers.add_parser("api", help="Run the API server")

    # Database command
    subparsers.add_parser("init-db", help="Create the database schema")

    # Analytics command
    analytics_parser = subparsers.add_parser("analytics", help="Print the analytics summary")
    analytics_parser.add_argument(
        "--range",
        dest="range_days",
        type=int,
        choices=config.analytics.allowed_ranges,
        default=config.analytics.default_range_days,
        help="Period length in days",
    )

    # Role command
    role_parser = subparsers.add_parser("set-role", help="Change a user's role")
    role_parser.add_argument("email", help="Profile e-mail")
    role_parser.add_argument("role", choices=ROLES, help="New role")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "api":
            run_api()
        elif args.command == "init-db":
            init_db()
        elif args.command == "analytics":
            run_analytics(args.range_days)
        elif args.command == "set-role":
            set_role(args.email, args.role)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
