# app/domain/errors.py


class MarketplaceError(Exception):
    """Bazowy wyjatek domeny checkout/platnosci."""


class InvalidRequest(MarketplaceError):
    pass


class Unauthorized(MarketplaceError):
    pass


class ValidationError(MarketplaceError):
    pass


class PersistenceError(MarketplaceError):
    pass


class OrderNotFound(MarketplaceError):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class OrderCreationFailed(MarketplaceError):
    pass


class InvoiceCreationFailed(MarketplaceError):
    """Zamowienie istnieje, ale bramka nie wystawila faktury."""

    def __init__(self, order_id: str, details: str):
        super().__init__(details)
        self.order_id = order_id
        self.details = details


class GatewayError(MarketplaceError):
    pass


class GatewayUnavailable(GatewayError):
    pass


class GatewayRejected(GatewayError):
    pass


class GatewayTimeout(GatewayError):
    pass


class ReconciliationGap(MarketplaceError):
    """
    Faktura wystawiona albo status zapisany, ale kolejny krok (podpiecie faktury,
    czyszczenie koszyka) sie nie udal. Nie wychodzi do klienta, tylko do logow
    i do zadania naprawczego.
    """

    def __init__(self, order_id: str, step: str, cause: Exception):
        super().__init__(f"Order {order_id}: {step} failed: {cause}")
        self.order_id = order_id
        self.step = step
        self.cause = cause
