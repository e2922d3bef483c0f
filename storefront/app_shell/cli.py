import argparse
import logging
import sys

from storefront.adapters.auth.crypto import JWTAuthAdapter
from storefront.adapters.clock import SystemClock
from storefront.adapters.sqlite.migrator import SQLiteMigrator
from storefront.adapters.sqlite.repos import SQLiteUserRepo
from storefront.api.deps import Settings
from storefront.app_shell.config import configure_logging
from storefront.components.bootstrap import BootstrapInput, run_create_admin

logger = logging.getLogger("cli")


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    migrator = SQLiteMigrator(settings.db_path, settings.migrations_dir)
    if args.status:
        pending = migrator.pending()
        for migration in pending:
            print(f"pending  {migration.filename}")
        print(f"{len(pending)} pending migrations for {settings.db_path}.")
        return
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migrations to {settings.db_path}.")


def handle_create_admin(settings: Settings, args: argparse.Namespace) -> None:
    SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    result = run_create_admin(
        BootstrapInput(
            bootstrap_email=args.email,
            bootstrap_password=args.password,
            bootstrap_name=args.name,
        ),
        SQLiteUserRepo(settings.db_path),
        JWTAuthAdapter(),
        SystemClock(),
    )
    if not result.success or result.user is None:
        for error in result.errors:
            logger.error("%s: %s", error.field, error.message)
        sys.exit(1)
    print(f"Admin created: {result.user.email} ({result.user.id})")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("storefront.api.main:app", host=args.host, port=args.port, reload=args.reload)


def main() -> None:
    parser = argparse.ArgumentParser(description="Storefront API CLI")
    parser.add_argument("--data-dir", help="Directory holding store.db (default: $STORE_DATA_DIR)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending database migrations")
    migrate_parser.add_argument(
        "--status", action="store_true", help="List pending migrations without applying them"
    )

    # create-admin
    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--password", required=True)
    admin_parser.add_argument("--name", default="Store Admin")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    args = parser.parse_args()

    configure_logging()
    settings = Settings(data_dir=args.data_dir)

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "create-admin":
        handle_create_admin(settings, args)
    elif args.command == "serve":
        handle_serve(settings, args)


if __name__ == "__main__":
    main()
