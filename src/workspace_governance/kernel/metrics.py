"""
Prometheus metrics collection for Workspace Governance.

Provides observability into tree builds, ancestor walks, and delegations.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram

# ============================================================================
# Hierarchy Metrics
# ============================================================================

tree_builds_total = Counter(
    "wsgov_tree_builds_total",
    "Total number of workspace trees built from flat node lists",
)

tree_nodes_reclassified_total = Counter(
    "wsgov_tree_nodes_reclassified_total",
    "Nodes surfaced as roots because their parent could not be attached",
    ["reason"],  # reason: unresolved_parent, parent_cycle
)

ancestor_cycles_detected_total = Counter(
    "wsgov_ancestor_cycles_detected_total",
    "Ancestor walks that stopped on a revisited workspace id",
)

# ============================================================================
# Delegation Metrics
# ============================================================================

delegations_total = Counter(
    "wsgov_delegations_total",
    "Total number of role delegations by outcome",
    ["level", "status"],  # status: success, failed, partial, rejected
)

delegation_duration_seconds = Histogram(
    "wsgov_delegation_duration_seconds",
    "Duration of role delegation (both writes) in seconds",
    ["level"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

demotion_retries_total = Counter(
    "wsgov_demotion_retries_total",
    "Retries of the demotion step after a partial delegation",
    ["status"],
)

# ============================================================================
# Store Metrics
# ============================================================================

store_calls_total = Counter(
    "wsgov_store_calls_total",
    "Calls made to the node store by operation",
    ["operation", "status"],
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def record_delegation(level: str, status: str, duration: float | None = None) -> None:
    """
    Record the outcome of one delegation.

    Args:
        level: Hierarchy level name of the delegated role
        status: success, failed, partial or rejected
        duration: Seconds spent, when both writes were attempted
    """
    delegations_total.labels(level=level, status=status).inc()
    if duration is not None:
        delegation_duration_seconds.labels(level=level).observe(duration)


def track_store_call(
    operation: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """
    Decorator to count async node store calls by outcome.

    Args:
        operation: Store operation name (e.g. "update_membership_role")
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            status = "success"
            try:
                return await func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                store_calls_total.labels(operation=operation, status=status).inc()

        return wrapper

    return decorator

