#!/usr/bin/env python3
"""
Taskboard -- task list server with accounts and a session-held favorite task.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --port 8000
  python main.py --new-database

Environment variables:
  SECRET_KEY    Session cookie key material, at least 32 characters.
                Required unless DEBUG=true (which generates a throwaway key).
  See core/config.py for the full list.
"""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="Run the Taskboard HTTP API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --host 0.0.0.0 --port 8080
  DEBUG=true python main.py --new-database
        """,
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to listen on (default: 8000)",
    )
    parser.add_argument(
        "--new-database",
        action="store_true",
        help="Drop and recreate the account and task tables before serving",
    )
    args = parser.parse_args()

    # Imported after argument parsing so --help works without a SECRET_KEY.
    from api.main import app, open_stores

    if args.new_database:
        account_store, task_store = open_stores()
        account_store.reset_schema()
        task_store.reset_schema()
        account_store.close()
        task_store.close()
        print("Database reset: all accounts and tasks removed.")

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
