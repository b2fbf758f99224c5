"""Courier database management CLI.

Usage:
    courier-manage setup-db   # Create all tables
    courier-manage drop-db    # Drop all tables
"""

import argparse
import sys

from courier.domain import courier
from courier.utils.db import drop_db, setup_db


def setup_database():
    print("Initializing courier domain...")
    courier.init()
    print("Creating courier database schema...")
    setup_db(courier)
    print("Done.")


def drop_database():
    print("Initializing courier domain...")
    courier.init()
    print("Dropping courier database schema...")
    drop_db(courier)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Courier database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
