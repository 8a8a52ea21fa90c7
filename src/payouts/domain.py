"""Payouts bounded context — disbursements and merchant settlement.

Creates, approves and processes outbound money movements through a payout
provider, and settles merchants for every delivered order.
"""

import structlog
from protean.domain import Domain

# Load the provider package before init() traverses it file by file, so its
# submodules never execute ahead of payouts/provider/__init__.py (circular import)
import payouts.provider  # noqa: F401, E402

payouts = Domain(name="payouts")

logger = structlog.get_logger(__name__)
