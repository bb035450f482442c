#!/usr/bin/env python3
"""
MR-ROBOT Database Status

Connects to both stores the way the API does and prints their status.

Usage:
    python scripts/db_status.py [--json]

Requirements:
    - STORE_A_* / STORE_B_* (or shared DB_*) environment variables
    - Exits 1 if no store is connected
    - Logs and errors go to stderr; stdout carries only the report
"""

import argparse
import json
import sys

from dotenv import load_dotenv

from mrrobot.config import get_config
from mrrobot.logging_config import configure_logging
from mrrobot.storage import DualStoreMediator, MediatorError, StoreIdentity

load_dotenv()


def report_status(mediator: DualStoreMediator, as_json: bool = False) -> int:
    """
    Print status of both stores.

    Returns:
        Number of connected stores
    """
    status = mediator.get_status()

    if as_json:
        print(json.dumps({key: store.to_dict() for key, store in status.items()}, indent=2))
    else:
        for identity in StoreIdentity:
            store = status[identity.key]
            marker = "✅" if store.connected else "❌"
            line = f"{marker} {identity.label} ({identity.provider})"
            if not store.configured:
                line += " - not configured"
            elif store.error:
                line += f" - {store.error}"
            print(line)

    return sum(1 for store in status.values() if store.connected)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Report dual-store database status")
    parser.add_argument("--json", action="store_true", help="print status as JSON")
    args = parser.parse_args(argv)

    configure_logging()

    mediator = DualStoreMediator(get_config().database)

    try:
        mediator.initialize()
    except MediatorError as e:
        print(f"❌ {e}", file=sys.stderr)

    try:
        connected = report_status(mediator, as_json=args.json)
    finally:
        mediator.shutdown()

    return 0 if connected else 1


if __name__ == '__main__':
    sys.exit(main())
