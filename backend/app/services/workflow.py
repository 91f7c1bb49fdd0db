"""
Order Workflow

Wires the store, shared cache, propagator, gateway and surfaces into one
object per application, and provides the cached reads the views use.
"""
from dataclasses import dataclass
from typing import List, Optional

from app.core.settings import Settings
from app.schemas.dashboard import DashboardStats
from app.schemas.order import Order, OrderPage
from app.services.consistency import ConsistencyPropagator
from app.services.order_cache import DASHBOARD_STATS, OrderCache, order_detail_key, order_list_key
from app.services.order_gateway import OrderMutationGateway
from app.services.order_store import HttpOrderStore, OrderStore
from app.services.surfaces import DetailStatusAction, InlineStatusSelector, StatusUpdateDialog


@dataclass
class OrderWorkflow:
    store: OrderStore
    cache: OrderCache
    propagator: ConsistencyPropagator
    gateway: OrderMutationGateway
    inline: InlineStatusSelector
    dialog: StatusUpdateDialog
    detail: DetailStatusAction
    page_size: int = 20
    sort: Optional[str] = None

    # ------------------------------------------------------------------
    # Cached reads
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        return self.gateway.current_order(order_id)

    def cached_order(self, order_id: str) -> Optional[Order]:
        """The fresh cached detail, or None; never calls the store."""
        return self.cache.peek(order_detail_key(order_id))

    def list_orders(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> OrderPage:
        """
        One page of orders from the cache, filtered by status and search text.

        Rows without any identity (no id, no order number) are dropped.
        """
        page_size = page_size or self.page_size
        cached: OrderPage = self.cache.fetch(
            order_list_key(page, page_size, self.sort),
            lambda: self.store.list_orders(page, page_size, self.sort),
        )

        orders: List[Order] = [o for o in cached.orders if o.id or o.order_number]
        if status and status.lower() != "all":
            wanted = status.strip().lower()
            orders = [o for o in orders if (o.raw_status or "").strip().lower() == wanted]
        if search:
            orders = [o for o in orders if o.matches_search(search)]

        return cached.model_copy(update={"orders": orders})

    def dashboard_stats(self) -> DashboardStats:
        return self.cache.fetch(DASHBOARD_STATS, self.store.get_dashboard_stats)


def build_workflow(settings: Settings, store: Optional[OrderStore] = None) -> OrderWorkflow:
    """Assemble a workflow; `store` defaults to the HTTP client from settings."""
    store = store or HttpOrderStore.from_settings(settings)
    cache = OrderCache(
        ttl_seconds=settings.ORDER_CACHE_TTL_SECONDS,
        max_entries=settings.ORDER_CACHE_MAX_ENTRIES,
    )
    propagator = ConsistencyPropagator(cache, list_refetch_limit=settings.ORDER_LIST_REFETCH_PAGES)
    gateway = OrderMutationGateway(
        store,
        cache,
        propagator,
        include_cancel=settings.ALLOW_CANCEL_FROM_ACTIVE,
    )
    dialog = StatusUpdateDialog(gateway)
    return OrderWorkflow(
        store=store,
        cache=cache,
        propagator=propagator,
        gateway=gateway,
        inline=InlineStatusSelector(gateway),
        dialog=dialog,
        detail=DetailStatusAction(dialog),
        page_size=settings.ORDER_PAGE_SIZE,
        sort=settings.ORDER_LIST_SORT,
    )
