# app/services/checkout_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from app.domain.errors import (
    GatewayError,
    InvalidRequest,
    InvoiceCreationFailed,
    OrderCreationFailed,
    PersistenceError,
    ReconciliationGap,
    ValidationError,
)
from app.domain.schemas import CartItemIn, CheckoutIn, InvoiceCustomer, InvoiceItem, RetryInvoiceIn
from app.domain.status import INITIAL_STATE, OrderStatus, PaymentStatus, current_state
from app.repos.order_repo import OrderRepo
from app.services.invoice_client import XenditClient, pick_invoice
from app.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_CHECKOUT_FIELDS = (
    "userId",
    "customerName",
    "customerEmail",
    "customerPhone",
    "customerAddress",
)


def compute_total(items: List[CartItemIn]) -> Decimal:
    return sum((i.price * i.quantity for i in items), Decimal("0"))


def _validation_details(e: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
    )


class CheckoutService:
    """
    Use case checkoutu: koszyk -> zamowienie pending -> faktura w bramce.

    Zamowienie jest zapisywane przed faktura i nie jest cofane, gdy bramka
    zawiedzie - zostaje pending/pending bez referencji faktury.
    """

    def __init__(self, order_repo: OrderRepo, invoice_client: XenditClient):
        self.repo = order_repo
        self.invoice_client = invoice_client

    @staticmethod
    def parse_request(payload: Dict[str, Any]) -> CheckoutIn:
        if not isinstance(payload, dict):
            raise InvalidRequest("Missing required fields")

        if any(not payload.get(field) for field in REQUIRED_CHECKOUT_FIELDS):
            raise InvalidRequest("Missing required fields")

        if not payload.get("cartItems"):
            raise InvalidRequest("Cart is empty")

        try:
            return CheckoutIn.model_validate(payload)
        except PydanticValidationError as e:
            raise InvalidRequest(f"Invalid checkout request: {_validation_details(e)}") from e

    def checkout(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        request = self.parse_request(payload)

        #total liczony z pozycji, "total" od klienta ignorujemy
        total = compute_total(request.cart_items)

        #snapshot pozycji dokladnie tak jak przyszly
        products = list(payload["cartItems"])

        logger.info(
            f"Creating order for user {request.user_id}: "
            f"{len(products)} item(s), total {total}"
        )

        try:
            order = self.repo.create_order({
                "user_id": request.user_id,
                "products": products,
                "total_amount": total,
                "status": OrderStatus.PENDING.value,
                "payment_status": PaymentStatus.PENDING.value,
                "delivery_address": request.customer_address,
                "phone": request.customer_phone,
                "notes": request.notes or None,
            })
        except (ValidationError, PersistenceError) as e:
            logger.error(f"Order creation failed for user {request.user_id}: {e}")
            raise OrderCreationFailed(str(e)) from e

        logger.info(f"Order {order.id} created")

        customer = InvoiceCustomer(
            name=request.customer_name,
            email=request.customer_email,
            phone=request.customer_phone,
            address=request.customer_address,
        )
        items = [
            InvoiceItem(name=i.product_name, quantity=i.quantity, price=i.price)
            for i in request.cart_items
        ]

        return self._issue_invoice(order.id, total, customer, items)

    def _issue_invoice(
        self,
        order_id: str,
        total: Decimal,
        customer: InvoiceCustomer,
        items: List[InvoiceItem],
    ) -> Dict[str, Any]:
        try:
            invoice = self.invoice_client.create_invoice(order_id, total, customer, items)
        except GatewayError as e:
            # zamowienie zostaje pending/pending bez faktury
            logger.error(f"Invoice creation failed for order {order_id}: {e}")
            raise InvoiceCreationFailed(order_id, str(e)) from e

        logger.info(f"Invoice {invoice.id} created for order {order_id}")

        try:
            linked = self.repo.attach_invoice(
                order_id,
                invoice.id,
                invoice.invoice_url,
                datetime.now(timezone.utc),
            )
            if not linked:
                logger.warning(
                    f"Order {order_id} already had an invoice, {invoice.id} was not attached"
                )
        except PersistenceError as e:
            # faktura jest, powiazania brak - tylko log, checkout konczy sie sukcesem
            gap = ReconciliationGap(order_id, "attach invoice", e)
            logger.error(f"ReconciliationGap: {gap} (invoice {invoice.id})")

        return {
            "orderId": order_id,
            "invoiceUrl": invoice.invoice_url,
            "invoiceId": invoice.id,
        }

    def _find_gateway_invoice(self, order_id: str) -> Dict[str, Any] | None:
        try:
            invoice = pick_invoice(self.invoice_client.find_invoices(order_id))
        except GatewayError as e:
            # bez sprawdzenia bramki nie tworzymy nowej faktury
            logger.error(f"Invoice lookup failed for order {order_id}: {e}")
            raise InvoiceCreationFailed(order_id, str(e)) from e

        if invoice is None:
            return None

        logger.info(f"Order {order_id} has invoice {invoice.id} at the gateway, relinking")
        try:
            self.repo.attach_invoice(
                order_id,
                invoice.id,
                invoice.invoice_url,
                datetime.now(timezone.utc),
            )
        except PersistenceError as e:
            gap = ReconciliationGap(order_id, "attach invoice", e)
            logger.error(f"ReconciliationGap: {gap} (invoice {invoice.id})")

        return {
            "orderId": order_id,
            "invoiceUrl": invoice.invoice_url,
            "invoiceId": invoice.id,
        }

    def retry_invoice(self, order_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ponowienie faktury dla zamowienia, ktore zostalo bez niej.
        Jesli faktura juz jest podpieta - zwracamy ja, bez tworzenia duplikatu.
        """
        try:
            request = RetryInvoiceIn.model_validate(payload)
        except PydanticValidationError as e:
            raise InvalidRequest(f"Invalid retry request: {_validation_details(e)}") from e

        order = self.repo.get_order(order_id)

        if order.user_id != request.user_id:
            raise PermissionError("Brak dostępu do zamówienia")

        if order.invoice_id:
            logger.info(f"Order {order_id} already linked to invoice {order.invoice_id}")
            return {
                "orderId": order.id,
                "invoiceUrl": order.invoice_url,
                "invoiceId": order.invoice_id,
            }

        if current_state(order.payment_status, order.status) != INITIAL_STATE:
            raise InvalidRequest(
                f"Order {order_id} is {order.payment_status}/{order.status}, invoice cannot be issued"
            )

        #faktura mogla powstac przy checkoucie, tylko link sie nie zapisal
        existing = self._find_gateway_invoice(order.id)
        if existing:
            return existing

        customer = InvoiceCustomer(
            name=request.customer_name,
            email=request.customer_email,
            phone=order.phone,
            address=order.delivery_address,
        )
        try:
            items = [
                InvoiceItem(
                    name=p.get("product_name") or p.get("name"),
                    quantity=p["quantity"],
                    price=p["price"],
                )
                for p in order.products
            ]
        except (KeyError, PydanticValidationError) as e:
            raise InvalidRequest(f"Order {order_id} has malformed line items") from e

        return self._issue_invoice(order.id, Decimal(order.total_amount), customer, items)
