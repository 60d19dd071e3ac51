# app/services/webhook_service.py
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from app.domain.errors import InvalidRequest, PersistenceError, ReconciliationGap, Unauthorized
from app.domain.schemas import WebhookPayload
from app.domain.status import PAID_STATE, can_transition, current_state, map_gateway_status
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.services.invoice_client import XenditClient
from app.utils.settings import XENDIT_WEBHOOK_TOKEN
from app.utils.logging import get_logger

logger = get_logger(__name__)


class WebhookService:
    """
    Uzgadnianie statusu zamowienia z callbackiem bramki.

    Przejscia tylko do przodu (pending -> paid/confirmed albo expired/cancelled).
    Powtorzony callback z tym samym statusem to patch bez zmian i bez
    ponownego czyszczenia koszyka.
    """

    def __init__(
        self,
        order_repo: OrderRepo,
        cart_repo: CartRepo,
        invoice_client: XenditClient,
        webhook_token: str | None = None,
    ):
        self.orders = order_repo
        self.carts = cart_repo
        self.invoice_client = invoice_client
        self.webhook_token = XENDIT_WEBHOOK_TOKEN if webhook_token is None else webhook_token

    def authenticate(self, token: str | None) -> None:
        if not token:
            raise Unauthorized("Missing webhook token")

        if not self.invoice_client.verify_webhook_signature(self.webhook_token, token):
            logger.warning("Webhook rejected: invalid callback token")
            raise Unauthorized("Invalid webhook token")

    def handle(self, token: str | None, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.authenticate(token)

        try:
            event = WebhookPayload.model_validate(payload)
        except PydanticValidationError as e:
            raise InvalidRequest(f"Malformed webhook payload: {e.error_count()} error(s)") from e

        logger.info(
            f"Xendit webhook received: order {event.external_id}, status {event.status}, id {event.id}"
        )

        target_payment, target_status = map_gateway_status(event.status)
        target = (target_payment, target_status)

        #OrderNotFound leci wyzej, router odpowiada bez retry po stronie bramki
        order = self.orders.get_order(event.external_id)
        source = current_state(order.payment_status, order.status)

        result = {
            "order_id": order.id,
            "payment_status": target_payment.value,
            "status": target_status.value,
            "applied": False,
            "cart_cleared": None,
        }

        if source != target and not can_transition(source, target):
            return self._ignore(order, event.status, result)

        #zapis tylko jesli stan sie nie zmienil od odczytu
        written = self.orders.transition(order.id, (order.payment_status, order.status), {
            "payment_status": target_payment.value,
            "status": target_status.value,
            "transaction_id": event.id,
            "updated_at": datetime.now(timezone.utc),
        })
        if not written:
            order = self.orders.get_order(order.id)
            logger.warning(f"Order {order.id} changed while handling {event.status} callback")
            return self._ignore(order, event.status, result)

        result["applied"] = source != target

        logger.info(f"Order {order.id} updated: {target_payment.value}/{target_status.value}")

        if result["applied"] and target == PAID_STATE:
            result["cart_cleared"] = self._clear_cart(order.id, order.user_id)

        return result

    @staticmethod
    def _ignore(order, reported: str, result: Dict[str, Any]) -> Dict[str, Any]:
        logger.warning(
            f"Order {order.id} is {order.payment_status}/{order.status}, "
            f"ignoring {reported} callback"
        )
        result["payment_status"] = order.payment_status
        result["status"] = order.status
        return result

    def _clear_cart(self, order_id: str, user_id: str) -> bool:
        if not user_id:
            return False
        try:
            removed = self.carts.delete_cart_items(user_id)
        except PersistenceError as e:
            # status juz zapisany, koszyk zostaje do recznego wyczyszczenia
            gap = ReconciliationGap(order_id, "clear cart", e)
            logger.error(f"ReconciliationGap: {gap}")
            return False

        logger.info(f"Cart cleared for user {user_id} ({removed} item(s))")
        return True
