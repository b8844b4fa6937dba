#!/usr/bin/env python3
"""
Burnout Guard Command Line Interface

Main entry point for the `burnout-guard` command.

Usage:
    burnout-guard serve              # Start the server (OAuth, run-now, scheduler)
    burnout-guard run-now            # Protect every connected user once
    burnout-guard run-now --user ID  # Protect a single user
    burnout-guard users              # List connected users
    burnout-guard --version          # Show version
"""

import argparse
import asyncio
import sys

from burnout_guard.logging_config import setup_logging


def _build_orchestrator(config):
    from dotenv import load_dotenv

    from burnout_guard.config import DescopeCredentials
    from burnout_guard.protection.orchestrator import ProtectionOrchestrator
    from burnout_guard.providers.descope import DescopeClient, DescopeTokenProvider
    from burnout_guard.users.store import JsonFileUserStore

    load_dotenv()
    credentials = DescopeCredentials.from_env()
    client = DescopeClient(credentials, config.descope)
    user_store = JsonFileUserStore(config.users.resolved_path())
    return ProtectionOrchestrator.from_config(config, DescopeTokenProvider(client), user_store)


def cmd_serve(args):
    """Handle serve subcommand."""
    import uvicorn

    from burnout_guard.config import load_and_validate

    config = load_and_validate()
    host = args.host or config.server.host
    port = args.port or config.server.port

    print(f"Starting Burnout Guard at http://{host}:{port}")
    print(f"Connect your calendar: http://localhost:{port}/auth")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "burnout_guard.server.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=args.reload,
        log_level="info",
    )


def cmd_run_now(args):
    """Handle run-now subcommand."""
    from burnout_guard.config import load_and_validate
    from burnout_guard.protection.models import AggregateResult

    orchestrator = _build_orchestrator(load_and_validate())

    async def run() -> AggregateResult:
        if args.user:
            result = await orchestrator.run_for_user(args.user)
            return AggregateResult(results=[result])
        return await orchestrator.run_for_all_users()

    aggregate = asyncio.run(run())

    lines = aggregate.summary_lines()
    if not lines:
        print("No connected users.")
        return 0

    print("\n".join(lines))
    return 1 if any(r.failed for r in aggregate.results) else 0


def cmd_users(args):
    """Handle users subcommand."""
    from burnout_guard.config import load_and_validate
    from burnout_guard.users.store import JsonFileUserStore

    config = load_and_validate()
    users = JsonFileUserStore(config.users.resolved_path()).load()

    if not users:
        print("No connected users.")
        return

    for user_id in users:
        print(user_id)


def cmd_version(args):
    """Show version information."""
    try:
        from importlib.metadata import version

        v = version("burnout-guard")
    except Exception:
        from burnout_guard import __version__

        v = f"{__version__} (development)"

    print(f"Burnout Guard version {v}")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="burnout-guard",
        description="Burnout Guard - Calendar protection against overwork",
    )
    parser.add_argument(
        "--version", "-V", action="store_true", help="Show version and exit"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve subcommand
    serve_parser = subparsers.add_parser(
        "serve", help="Start the server with the periodic scheduler"
    )
    serve_parser.add_argument(
        "--host", default=None, help="Host to bind to (default: from config)"
    )
    serve_parser.add_argument(
        "--port", type=int, default=None, help="Port to bind to (default: from config or PORT)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )
    serve_parser.set_defaults(func=cmd_serve)

    # Run-now subcommand
    run_parser = subparsers.add_parser(
        "run-now", help="Run protection once and print the summary"
    )
    run_parser.add_argument(
        "--user", default=None, help="Only protect this user id"
    )
    run_parser.set_defaults(func=cmd_run_now)

    # Users subcommand
    users_parser = subparsers.add_parser("users", help="List connected users")
    users_parser.set_defaults(func=cmd_users)

    args = parser.parse_args(argv)

    # Handle --version at top level
    if args.version:
        cmd_version(args)
        return

    # If no command given, show help
    if not args.command:
        parser.print_help()
        return

    setup_logging()

    # Execute command
    result = args.func(args)

    # Commands may return an exit code
    if isinstance(result, int) and result != 0:
        sys.exit(result)


if __name__ == "__main__":
    main()
