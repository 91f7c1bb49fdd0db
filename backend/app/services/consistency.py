"""
Consistency Propagator

After a confirmed status change, every cached view that could hold the
order converges on the new state: the order's detail, every cached list
page, and the dashboard counters derived from order status. This is a
broadcast invalidate followed by a refetch, not a targeted patch. Only the
most recently viewed list pages are refetched eagerly; other pages are
dropped and load again on their next read.

Only ever called with a transition the store has already accepted.
"""
from typing import List

from app.logging_config import get_logger
from app.schemas.order import AppliedTransition
from app.services.order_cache import (
    DASHBOARD,
    ORDER_LISTS,
    CacheKey,
    OrderCache,
    order_detail_key,
)

logger = get_logger(__name__)


class ConsistencyPropagator:
    def __init__(self, cache: OrderCache, list_refetch_limit: int = 1):
        self.cache = cache
        self.list_refetch_limit = list_refetch_limit

    def scopes_for(self, applied: AppliedTransition) -> List[CacheKey]:
        return [
            order_detail_key(applied.order_id),
            ORDER_LISTS,
            DASHBOARD,
        ]

    def propagate(self, applied: AppliedTransition) -> List[CacheKey]:
        """Invalidate and refetch all views of the order. Returns the refreshed keys."""
        if not applied.applied:
            return []

        invalidated: List[CacheKey] = []
        for scope in self.scopes_for(applied):
            keep = self.list_refetch_limit if scope == ORDER_LISTS else None
            invalidated.extend(self.cache.invalidate(scope, keep=keep))

        refreshed = self.cache.refetch_stale()
        left_stale = [key for key in invalidated if self.cache.is_stale(key)]
        if left_stale:
            logger.warning(
                f"{len(left_stale)} cached view(s) of order {applied.order_id} could not be refreshed",
                extra={"order_id": applied.order_id, "stale": [str(key) for key in left_stale]},
            )
        logger.debug(
            f"Propagated status change for order {applied.order_id}",
            extra={
                "order_id": applied.order_id,
                "invalidated": len(invalidated),
                "refreshed": len(refreshed),
            },
        )
        return refreshed
