# app/tasks/reconcile.py
from datetime import datetime, timezone, timedelta

from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.domain.errors import GatewayError, MarketplaceError
from app.domain.status import INITIAL_STATE, current_state
from app.repos.order_repo import OrderRepo
from app.services.invoice_client import XenditClient, pick_invoice
from app.utils.settings import INVOICE_LINK_GRACE_SECONDS, PENDING_ORDER_TTL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # sqlite zwraca naive datetime
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def reconcile_pending_orders(
    repo: OrderRepo,
    invoice_client: XenditClient,
    now: datetime | None = None,
    grace_seconds: int = INVOICE_LINK_GRACE_SECONDS,
    ttl_seconds: int = PENDING_ORDER_TTL_SECONDS,
) -> dict:
    """
    Zamowienia bez faktury (pending albo juz oplacone):
    -faktura istnieje w bramce -> podpinamy (checkout nie zdazyl zapisac linku)
    -brak zywej faktury, pending/pending starsze niz TTL -> expired/cancelled
    """
    now = now or datetime.now(timezone.utc)
    stats = {"linked": 0, "expired": 0, "failed": 0}

    orders = repo.list_unlinked(older_than=now - timedelta(seconds=grace_seconds))
    logger.info(f"Found {len(orders)} order(s) without invoice")

    for order in orders:
        order_id = order.id
        created_at = _as_utc(order.created_at)
        pending = current_state(order.payment_status, order.status) == INITIAL_STATE
        try:
            invoice = pick_invoice(invoice_client.find_invoices(order_id))
            if invoice:
                if repo.attach_invoice(order_id, invoice.id, invoice.invoice_url, now):
                    logger.info(f"Order {order_id} linked to invoice {invoice.id} ({invoice.status})")
                    stats["linked"] += 1
                continue

            if pending and created_at < now - timedelta(seconds=ttl_seconds):
                if repo.expire_unlinked(order_id, now):
                    logger.info(f"Order {order_id} expired without invoice")
                    stats["expired"] += 1
        except GatewayError as e:
            logger.warning(f"Invoice lookup for order {order_id} failed: {e}")
            stats["failed"] += 1
        except MarketplaceError as e:
            logger.error(f"Reconciliation of order {order_id} failed: {e}")
            stats["failed"] += 1

    return stats


@celery_app.task(name="app.tasks.reconcile.reconcile_pending_orders_task")
def reconcile_pending_orders_task():
    logger.info("Reconcile pending orders task started")

    db = SessionLocal()
    try:
        return reconcile_pending_orders(OrderRepo(db), XenditClient())
    finally:
        db.close()
