"""DropRun management CLI.

Usage:
    python src/manage.py setup-db                     # Create all tables
    python src/manage.py drop-db --domain payouts     # Drop one domain's tables
    python src/manage.py reconcile-settlements        # Retry pending merchant payouts
"""

import argparse
import sys

from shared.db import drop_db, setup_db

DOMAINS = ("marketplace", "payouts")


def _load_domains(names=None):
    from marketplace.domain import marketplace
    from marketplace.pricing.fees import default_schedule
    from payouts.domain import payouts

    default_schedule()
    all_domains = {"marketplace": marketplace, "payouts": payouts}
    return {name: all_domains[name] for name in (names or DOMAINS)}


def setup_databases(domains=None):
    """Create database schemas for the specified (or all) domains."""
    for name, domain in _load_domains(domains).items():
        print(f"Initializing {name} domain...")
        domain.init()
        print(f"Creating {name} database schema...")
        setup_db(domain)
        print(f"  {name} schema ready.")

    print("Done.")


def drop_databases(domains=None):
    """Drop database schemas for the specified (or all) domains."""
    for name, domain in _load_domains(domains).items():
        print(f"Initializing {name} domain...")
        domain.init()
        print(f"Dropping {name} database schema...")
        drop_db(domain)
        print(f"  {name} schema dropped.")

    print("Done.")


def reconcile_settlements(limit):
    """Create merchant payouts for delivered orders that are still unsettled."""
    from payouts.settlement.reconciliation import ReconcileSettlements

    payouts = _load_domains(["payouts"])["payouts"]
    payouts.init()
    with payouts.domain_context():
        report = payouts.process(ReconcileSettlements(limit=limit), asynchronous=False)

    print(f"Examined {report.examined} pending settlement(s).")
    print(f"  disbursed:     {len(report.disbursed)}")
    print(f"  below minimum: {len(report.below_threshold)}")
    print(f"  still pending: {len(report.still_pending)}")
    for order_id in report.still_pending:
        print(f"    order {order_id}")


def main():
    parser = argparse.ArgumentParser(description="DropRun management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser("setup-db", help="Create all database tables")
    setup_parser.add_argument(
        "--domain",
        choices=DOMAINS,
        nargs="*",
        help="Specific domain(s) to set up (default: all)",
    )

    drop_parser = subparsers.add_parser("drop-db", help="Drop all database tables")
    drop_parser.add_argument(
        "--domain",
        choices=DOMAINS,
        nargs="*",
        help="Specific domain(s) to drop (default: all)",
    )

    reconcile_parser = subparsers.add_parser("reconcile-settlements", help="Retry pending merchant payouts")
    reconcile_parser.add_argument("--limit", type=int, default=100)

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases(args.domain)
    elif args.command == "drop-db":
        drop_databases(args.domain)
    elif args.command == "reconcile-settlements":
        reconcile_settlements(args.limit)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
