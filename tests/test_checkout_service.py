from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.domain.errors import (
    GatewayRejected,
    GatewayTimeout,
    GatewayUnavailable,
    InvalidRequest,
    InvoiceCreationFailed,
    OrderCreationFailed,
    PersistenceError,
)
from app.domain.schemas import Invoice
from app.repos.order_repo import OrderRepo
from app.services.checkout_service import CheckoutService


@pytest.fixture
def service(order_repo, invoice_client):
    return CheckoutService(order_repo=order_repo, invoice_client=invoice_client)


def test_checkout_creates_order_and_invoice(service, order_repo, invoice_client, checkout_payload):
    result = service.checkout(checkout_payload)

    assert result["invoiceId"] == "inv_123"
    assert result["invoiceUrl"] == "https://checkout.xendit.co/web/inv_123"

    order = order_repo.get_order(result["orderId"])
    assert order.total_amount == Decimal("30000")
    assert (order.payment_status, order.status) == ("pending", "pending")
    assert order.invoice_id == "inv_123"
    assert order.invoice_url == "https://checkout.xendit.co/web/inv_123"
    assert order.delivery_address == "Jl. Merdeka No. 1, Bandung"
    assert order.phone == "081234567890"
    assert order.notes == "Tolong dibungkus rapi"
    assert order.products == checkout_payload["cartItems"]

    args = invoice_client.create_invoice.call_args.args
    assert args[0] == order.id
    assert args[1] == Decimal("30000")
    assert args[2].email == "siti@example.com"
    assert [(i.name, i.quantity) for i in args[3]] == [("Kopi", 2)]


def test_total_ignores_client_total(service, order_repo, checkout_payload):
    checkout_payload["total"] = 1
    checkout_payload["totalAmount"] = 1
    checkout_payload["cartItems"] = [
        {"product_name": "Kopi", "quantity": 2, "price": 15000},
        {"product_name": "Keripik Pisang", "quantity": 3, "price": 12500.5},
        {"product_name": "Sambal", "quantity": 1, "price": "20000"},
    ]

    result = service.checkout(checkout_payload)

    order = order_repo.get_order(result["orderId"])
    assert order.total_amount == Decimal("30000") + Decimal("37501.5") + Decimal("20000")


@pytest.mark.parametrize(
    "field",
    ["userId", "customerName", "customerEmail", "customerPhone", "customerAddress"],
)
def test_missing_customer_field_is_rejected(service, order_repo, invoice_client, checkout_payload, field):
    checkout_payload[field] = ""

    with pytest.raises(InvalidRequest, match="Missing required fields"):
        service.checkout(checkout_payload)

    assert order_repo.list_orders() == []
    invoice_client.create_invoice.assert_not_called()


@pytest.mark.parametrize("cart", [[], None])
def test_empty_cart_is_rejected(service, order_repo, checkout_payload, cart):
    checkout_payload["cartItems"] = cart

    with pytest.raises(InvalidRequest, match="Cart is empty"):
        service.checkout(checkout_payload)

    assert order_repo.list_orders() == []


@pytest.mark.parametrize(
    "item",
    [
        {"product_name": "Kopi", "quantity": 0, "price": 15000},
        {"product_name": "Kopi", "quantity": 1, "price": "gratis"},
        {"quantity": 1, "price": 15000},
    ],
)
def test_malformed_item_is_rejected(service, order_repo, checkout_payload, item):
    checkout_payload["cartItems"] = [item]

    with pytest.raises(InvalidRequest):
        service.checkout(checkout_payload)

    assert order_repo.list_orders() == []


def test_order_creation_failure_skips_invoice(invoice_client, checkout_payload):
    repo = MagicMock(spec=OrderRepo)
    repo.create_order.side_effect = PersistenceError("connection lost")
    service = CheckoutService(order_repo=repo, invoice_client=invoice_client)

    with pytest.raises(OrderCreationFailed):
        service.checkout(checkout_payload)

    invoice_client.create_invoice.assert_not_called()


@pytest.mark.parametrize("error", [GatewayUnavailable, GatewayRejected, GatewayTimeout])
def test_invoice_failure_keeps_pending_order(service, order_repo, invoice_client, checkout_payload, error):
    invoice_client.create_invoice.side_effect = error("gateway says no")

    with pytest.raises(InvoiceCreationFailed) as exc_info:
        service.checkout(checkout_payload)

    order = order_repo.get_order(exc_info.value.order_id)
    assert (order.payment_status, order.status) == ("pending", "pending")
    assert order.invoice_id is None
    assert "gateway says no" in exc_info.value.details


def test_invoice_link_failure_still_succeeds(invoice_client, order_repo, checkout_payload):
    repo = MagicMock(wraps=order_repo)
    repo.attach_invoice.side_effect = PersistenceError("deadlock detected")
    service = CheckoutService(order_repo=repo, invoice_client=invoice_client)

    result = service.checkout(checkout_payload)

    assert result["invoiceUrl"] == "https://checkout.xendit.co/web/inv_123"
    assert order_repo.get_order(result["orderId"]).invoice_id is None


def _retry_payload(**overrides):
    payload = {
        "userId": "user-1",
        "customerName": "Siti Aminah",
        "customerEmail": "siti@example.com",
    }
    payload.update(overrides)
    return payload


def test_retry_invoice_after_failure(service, order_repo, invoice_client, checkout_payload):
    invoice_client.create_invoice.side_effect = GatewayUnavailable("503")
    with pytest.raises(InvoiceCreationFailed) as exc_info:
        service.checkout(checkout_payload)
    order_id = exc_info.value.order_id

    invoice_client.create_invoice.side_effect = None
    result = service.retry_invoice(order_id, _retry_payload())

    assert result == {
        "orderId": order_id,
        "invoiceUrl": "https://checkout.xendit.co/web/inv_123",
        "invoiceId": "inv_123",
    }
    assert order_repo.get_order(order_id).invoice_id == "inv_123"
    args = invoice_client.create_invoice.call_args.args
    assert args[1] == Decimal("30000")
    assert args[2].address == "Jl. Merdeka No. 1, Bandung"


def test_retry_invoice_does_not_duplicate(service, invoice_client, checkout_payload):
    result = service.checkout(checkout_payload)
    invoice_client.create_invoice.reset_mock()
    invoice_client.create_invoice.return_value = Invoice(id="inv_other", invoice_url="https://x/other")

    again = service.retry_invoice(result["orderId"], _retry_payload())

    assert again["invoiceId"] == "inv_123"
    invoice_client.create_invoice.assert_not_called()


def test_retry_invoice_checks_owner(service, invoice_client, checkout_payload):
    invoice_client.create_invoice.side_effect = GatewayUnavailable("503")
    with pytest.raises(InvoiceCreationFailed) as exc_info:
        service.checkout(checkout_payload)

    with pytest.raises(PermissionError):
        service.retry_invoice(exc_info.value.order_id, _retry_payload(userId="someone-else"))


def test_retry_invoice_for_closed_order(service, order_repo, invoice_client, checkout_payload):
    invoice_client.create_invoice.side_effect = GatewayUnavailable("503")
    with pytest.raises(InvoiceCreationFailed) as exc_info:
        service.checkout(checkout_payload)
    order_id = exc_info.value.order_id
    order_repo.update_order(order_id, {"payment_status": "expired", "status": "cancelled"})

    with pytest.raises(InvalidRequest):
        service.retry_invoice(order_id, _retry_payload())


def test_retry_after_link_failure_relinks_existing_invoice(invoice_client, order_repo, checkout_payload):
    repo = MagicMock(wraps=order_repo)
    repo.attach_invoice.side_effect = PersistenceError("deadlock detected")
    result = CheckoutService(order_repo=repo, invoice_client=invoice_client).checkout(checkout_payload)
    order_id = result["orderId"]
    assert order_repo.get_order(order_id).invoice_id is None

    invoice_client.find_invoices.return_value = [
        Invoice(id="inv_123", invoice_url="https://checkout.xendit.co/web/inv_123", external_id=order_id)
    ]
    service = CheckoutService(order_repo=order_repo, invoice_client=invoice_client)
    again = service.retry_invoice(order_id, _retry_payload())

    assert again["invoiceId"] == "inv_123"
    assert invoice_client.create_invoice.call_count == 1
    invoice_client.find_invoices.assert_called_once_with(order_id)
    assert order_repo.get_order(order_id).invoice_id == "inv_123"


def test_retry_creates_new_invoice_when_gateway_has_only_expired(service, order_repo, invoice_client, checkout_payload):
    invoice_client.create_invoice.side_effect = GatewayUnavailable("503")
    with pytest.raises(InvoiceCreationFailed) as exc_info:
        service.checkout(checkout_payload)
    order_id = exc_info.value.order_id

    invoice_client.create_invoice.side_effect = None
    invoice_client.find_invoices.return_value = [
        Invoice(id="inv_dead", invoice_url="https://x/inv_dead", status="EXPIRED", external_id=order_id)
    ]
    result = service.retry_invoice(order_id, _retry_payload())

    assert result["invoiceId"] == "inv_123"
    assert order_repo.get_order(order_id).invoice_id == "inv_123"


def test_retry_fails_when_invoice_lookup_fails(service, order_repo, invoice_client, checkout_payload):
    invoice_client.create_invoice.side_effect = GatewayUnavailable("503")
    with pytest.raises(InvoiceCreationFailed) as exc_info:
        service.checkout(checkout_payload)
    order_id = exc_info.value.order_id
    invoice_client.create_invoice.reset_mock()

    invoice_client.find_invoices.side_effect = GatewayTimeout("timed out")
    with pytest.raises(InvoiceCreationFailed):
        service.retry_invoice(order_id, _retry_payload())

    invoice_client.create_invoice.assert_not_called()
    assert order_repo.get_order(order_id).invoice_id is None
