# app/services/order_service.py
from decimal import Decimal

from app.domain.errors import InvalidRequest
from app.domain.schemas import AdminOrdersOut, OrderOut, OrdersSummary
from app.domain.status import PaymentStatus
from app.repos.order_repo import OrderRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Odczyty zamówień (Query) - historia klienta i panel admina.
    Zmiany stanu robia tylko CheckoutService i WebhookService.
    """

    def __init__(self, order_repo: OrderRepo):
        self.repo = order_repo

    def get_order(self, order_id: str, user_id: str) -> OrderOut:
        order = self.repo.get_order(order_id)

        if order.user_id != user_id:
            raise PermissionError("Brak dostępu do zamówienia")

        return OrderOut.model_validate(order)

    def list_user_orders(self, user_id: str) -> list[OrderOut]:
        return [OrderOut.model_validate(o) for o in self.repo.list_orders(user_id=user_id)]

    def admin_overview(self, payment_status: str | None = None) -> AdminOrdersOut:
        if payment_status and payment_status not in {s.value for s in PaymentStatus}:
            raise InvalidRequest(f"Unknown payment status: {payment_status}")

        orders = self.repo.list_orders(payment_status=payment_status)
        logger.info(f"Admin overview: {len(orders)} order(s), filter={payment_status or 'all'}")

        summary = OrdersSummary(
            count=len(orders),
            revenue=sum((Decimal(o.total_amount) for o in orders), Decimal("0")),
            paid=sum(1 for o in orders if o.payment_status == PaymentStatus.PAID.value),
            pending=sum(1 for o in orders if o.payment_status == PaymentStatus.PENDING.value),
        )
        return AdminOrdersOut(
            orders=[OrderOut.model_validate(o) for o in orders],
            summary=summary,
        )
