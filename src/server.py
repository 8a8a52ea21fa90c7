"""Protean Engine runner for the DropRun domains.

Starts Engine workers that handle events asynchronously in production:
- Marketplace: publishes delivery and order events through the outbox
- Payouts: sends queued disbursements to the payout provider and settles
  merchants when Marketplace reports a completed delivery

Usage:
    python src/server.py                       # Run both domain engines
    python src/server.py --domain marketplace  # Run only the marketplace engine
    python src/server.py --domain payouts      # Run only the payouts engine
"""

import argparse
import asyncio

from protean.server.engine import Engine

from shared.logging import configure_logging

DOMAINS = ("marketplace", "payouts")


def _get_domain(name):
    """Import and initialize a domain by name."""
    if name == "marketplace":
        from marketplace.domain import marketplace
        from marketplace.pricing.fees import default_schedule

        marketplace.init()
        default_schedule()
        return marketplace
    elif name == "payouts":
        from payouts.domain import payouts

        payouts.init()
        return payouts
    else:
        raise ValueError(f"Unknown domain: {name}")


async def run(domain_names):
    engines = [Engine(_get_domain(name)) for name in domain_names]
    await asyncio.gather(*(engine.run() for engine in engines))


def main():
    parser = argparse.ArgumentParser(description="DropRun Engine runner")
    parser.add_argument(
        "--domain",
        choices=DOMAINS,
        help="Run a single domain engine (default: run all)",
    )
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run([args.domain] if args.domain else list(DOMAINS)))


if __name__ == "__main__":
    main()
