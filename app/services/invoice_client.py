# app/services/invoice_client.py
import hmac
from decimal import Decimal
from typing import List

import requests
from pydantic import ValidationError as PydanticValidationError

from app.domain.errors import GatewayRejected, GatewayTimeout, GatewayUnavailable
from app.domain.schemas import Invoice, InvoiceCustomer, InvoiceItem
from app.utils.retry import http_retry
from app.utils.settings import (
    APP_URL,
    GATEWAY_TIMEOUT_SECONDS,
    INVOICE_CURRENCY,
    XENDIT_API_URL,
    XENDIT_SECRET_KEY,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)


def _amount(value: Decimal) -> int | float:
    #bramka przyjmuje liczbe, IDR zwykle bez groszy
    value = Decimal(value)
    return int(value) if value == value.to_integral_value() else float(value)


#kolejnosc wyboru faktury, gdy bramka zwraca kilka dla jednego zamowienia
_INVOICE_PREFERENCE = ("PAID", "SETTLED", "PENDING")


def pick_invoice(invoices: List[Invoice]) -> Invoice | None:
    """Najlepsza faktura do podpiecia; wygasle (EXPIRED) sa pomijane."""
    for status in _INVOICE_PREFERENCE:
        for invoice in invoices:
            if (invoice.status or "").upper() == status:
                return invoice
    return None


def verify_webhook_signature(expected_secret: str, provided_token: str) -> bool:
    """Porownanie tokenu callbacku w stalym czasie."""
    if not expected_secret or not provided_token:
        return False
    return hmac.compare_digest(expected_secret.encode(), provided_token.encode())


class XenditClient:
    """
    Klient bramki faktur:
    -tworzenie faktury (jedna proba, bez retry - POST nie jest idempotentny)
    -wyszukiwanie faktur po external_id (GET, z retry)
    -weryfikacja tokenu webhooka
    """

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        app_url: str | None = None,
    ):
        self.secret_key = XENDIT_SECRET_KEY if secret_key is None else secret_key
        self.base_url = (base_url or XENDIT_API_URL).rstrip("/")
        self.timeout = timeout or GATEWAY_TIMEOUT_SECONDS
        self.app_url = (app_url or APP_URL).rstrip("/")

    def _auth(self):
        if not self.secret_key:
            raise GatewayUnavailable("Xendit client not initialized - XENDIT_SECRET_KEY missing")
        return (self.secret_key, "")

    def _build_invoice_body(
        self,
        order_id: str,
        amount: Decimal,
        customer: InvoiceCustomer,
        items: List[InvoiceItem],
    ) -> dict:
        return {
            "external_id": order_id,
            "amount": _amount(amount),
            "payer_email": customer.email,
            "description": f"Order {order_id}",
            "customer": {
                "given_names": customer.name,
                "email": customer.email,
                "mobile_number": customer.phone,
                "addresses": [
                    {
                        "country": "Indonesia",
                        "street_line1": customer.address,
                    }
                ],
            },
            "customer_notification_preference": {
                "invoice_created": ["email"],
                "invoice_reminder": ["email"],
                "invoice_paid": ["email"],
            },
            "success_redirect_url": f"{self.app_url}/payment/success?order_id={order_id}",
            "failure_redirect_url": f"{self.app_url}/payment/failed?order_id={order_id}",
            "currency": INVOICE_CURRENCY,
            "items": [
                {"name": i.name, "quantity": i.quantity, "price": _amount(i.price)}
                for i in items
            ],
        }

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            resp = requests.request(method, url, auth=self._auth(), timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise GatewayTimeout(f"Xendit {method} {url} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise GatewayUnavailable(f"Xendit {method} {url} failed: {e}") from e

        if resp.status_code >= 500:
            raise GatewayUnavailable(f"Xendit returned {resp.status_code}: {resp.text[:200]}")
        if resp.status_code >= 400:
            raise GatewayRejected(f"Xendit returned {resp.status_code}: {resp.text[:200]}")
        return resp

    @staticmethod
    def _parse_invoice(data) -> Invoice:
        try:
            return Invoice.model_validate(data)
        except PydanticValidationError as e:
            raise GatewayRejected(f"Malformed invoice response: {e.error_count()} error(s)") from e

    def create_invoice(
        self,
        order_id: str,
        amount: Decimal,
        customer: InvoiceCustomer,
        items: List[InvoiceItem],
    ) -> Invoice:
        url = f"{self.base_url}/v2/invoices"
        logger.info(f"XenditClient POST {url} for order {order_id}")

        resp = self._send("POST", url, json=self._build_invoice_body(order_id, amount, customer, items))
        try:
            data = resp.json()
        except ValueError as e:
            raise GatewayRejected("Xendit response is not JSON") from e

        return self._parse_invoice(data)

    def find_invoices(self, order_id: str) -> List[Invoice]:
        try:
            raw = self._find_invoices_raw(order_id)
        except requests.Timeout as e:
            raise GatewayTimeout(f"Xendit invoice lookup for {order_id} timed out") from e
        except requests.RequestException as e:
            raise GatewayUnavailable(f"Xendit invoice lookup for {order_id} failed: {e}") from e
        return [self._parse_invoice(d) for d in raw]

    @http_retry()
    def _find_invoices_raw(self, order_id: str) -> list:
        url = f"{self.base_url}/v2/invoices"
        logger.info(f"XenditClient GET {url}?external_id={order_id}")

        #retry dziala na wyjatkach requests, wiec tu bez tlumaczenia na bledy bramki
        resp = requests.get(
            url,
            params={"external_id": order_id},
            auth=self._auth(),
            timeout=self.timeout,
        )
        if resp.status_code == 404:
            return []
        if resp.status_code >= 500:
            raise GatewayUnavailable(f"Xendit returned {resp.status_code}")
        if resp.status_code >= 400:
            raise GatewayRejected(f"Xendit returned {resp.status_code}")

        data = resp.json()
        if not isinstance(data, list):
            raise GatewayRejected("Expected a list of invoices")
        return data

    def verify_webhook_signature(self, expected_secret: str, provided_token: str) -> bool:
        return verify_webhook_signature(expected_secret, provided_token)
