"""
AttendChain - Main Entry Point
Inspect a stored ledger snapshot: system statistics and chain validation.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import load_config
from .integration.storage import SnapshotStore, open_manager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='attendchain', description=__doc__)
    parser.add_argument('snapshot', nargs='?', help="Snapshot file (default: ATTENDCHAIN_SNAPSHOT_PATH)")
    parser.add_argument('--validate', action='store_true', help="Print the full validation report")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for AttendChain."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    config = load_config()
    store = SnapshotStore(args.snapshot or config.snapshot_path)
    manager = open_manager(store, config)
    stats = manager.system_stats()

    print("=" * 50)
    print("AttendChain ledger")
    print("=" * 50)
    print(f"  Snapshot:      {store.path} ({'found' if store.exists() else 'missing'})")
    print(f"  Departments:   {stats['departments']}")
    print(f"  Classes:       {stats['classes']}")
    print(f"  Students:      {stats['students']}")
    print(f"  Total blocks:  {stats['totalBlocks']}")
    print(f"  Chains valid:  {'yes' if stats['isValid'] else 'no'}")

    if args.validate:
        report = manager.validate_all_chains()
        for error in report['errors']:
            print(f"  ! {error}")

    return 0 if stats['isValid'] else 1


if __name__ == "__main__":
    sys.exit(main())
