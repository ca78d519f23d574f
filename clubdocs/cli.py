import argparse
import sys

from .config import get_settings
from .database import SessionLocal, init_db
from .models.user import UserRole
from .services.auth import AuthService
from .services.directory import DirectoryService


def seed_admin():
    settings = get_settings()

    if not settings.admin_password:
        print("ERROR: ADMIN_PASSWORD environment variable is required.")
        print("Set it in your .env file or export it before running this command.")
        sys.exit(1)

    db = SessionLocal()
    try:
        existing = AuthService.get_user_by_email(db, settings.admin_email)
        if existing:
            print(f"Admin user already exists: {settings.admin_email}")
            return existing

        user = AuthService.create_user(
            db,
            email=settings.admin_email,
            password=settings.admin_password,
            role=UserRole.ADMIN,
        )
        print(f"Created admin user: {user.email} (role: {user.role})")
        return user
    finally:
        db.close()


def seed_defaults():
    db = SessionLocal()
    try:
        created = DirectoryService.seed_defaults(db)
        print(f"Seeded {created} default categories/tags")
    finally:
        db.close()


def print_token(email: str):
    db = SessionLocal()
    try:
        user = AuthService.get_user_by_email(db, email)
        if not user:
            print(f"ERROR: no user with email {email}")
            sys.exit(1)
        print(AuthService.create_token_for_user(user))
    finally:
        db.close()


def main(argv=None):
    parser = argparse.ArgumentParser(prog="clubdocs", description="Club document service operator commands")
    subcommands = parser.add_subparsers(dest="command", required=True)
    subcommands.add_parser("init-db", help="create tables (development databases)")
    subcommands.add_parser("seed-admin", help="create the admin user from ADMIN_EMAIL / ADMIN_PASSWORD")
    subcommands.add_parser("seed-defaults", help="create the default document categories and tags")
    token = subcommands.add_parser("token", help="print an access token for a user")
    token.add_argument("email")

    args = parser.parse_args(argv)
    if args.command == "init-db":
        init_db()
        print("Database tables created")
    elif args.command == "seed-admin":
        seed_admin()
    elif args.command == "seed-defaults":
        seed_defaults()
    elif args.command == "token":
        print_token(args.email)


if __name__ == "__main__":
    main()
