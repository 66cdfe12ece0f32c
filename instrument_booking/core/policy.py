"""Authorization policy for record mutation.

Authorization is a single function parameterized by record kind. The
observed behaviour gates reservations to their owning identity and leaves
maintenance records open to every client; the
``require_maintenance_ownership`` feature flag gates maintenance too.
"""

import logging
from typing import Callable, Dict, Optional

from ..config.settings import is_enabled
from ..models.records import BookingRecord, RecordKind

logger = logging.getLogger(__name__)

# (record, identity) -> allowed
AuthorizationPolicy = Callable[[BookingRecord, str], bool]


def ownership_rules() -> Dict[RecordKind, bool]:
    """Whether each record kind requires the owning identity to mutate it."""
    return {
        RecordKind.RESERVATION: True,
        RecordKind.MAINTENANCE: is_enabled('require_maintenance_ownership'),
    }


def make_policy(rules: Optional[Dict[RecordKind, bool]] = None) -> AuthorizationPolicy:
    """Build a policy from per-kind ownership rules.

    Args:
        rules: Kind -> ownership required. Defaults to ownership_rules(),
            evaluated on every call so feature flag changes take effect.

    Returns:
        Policy function
    """
    def policy(record: BookingRecord, identity: str) -> bool:
        required = (rules if rules is not None else ownership_rules()).get(record.kind, True)
        if not required:
            return True
        allowed = record.owner_identity == identity
        if not allowed:
            logger.debug(
                f"Denied {record.kind.value} {record.id}: owned by "
                f"{record.owner_identity[:8]}..., caller {identity[:8]}..."
            )
        return allowed

    return policy


default_policy = make_policy()
