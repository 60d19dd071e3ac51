# app/domain/status.py
from enum import Enum
from typing import Tuple


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class GatewayStatus(str, Enum):
    PAID = "PAID"
    EXPIRED = "EXPIRED"


State = Tuple[PaymentStatus, OrderStatus]

INITIAL_STATE: State = (PaymentStatus.PENDING, OrderStatus.PENDING)
PAID_STATE: State = (PaymentStatus.PAID, OrderStatus.CONFIRMED)
EXPIRED_STATE: State = (PaymentStatus.EXPIRED, OrderStatus.CANCELLED)

#dozwolone przejscia (payment_status, status) -> zbior stanow docelowych
TRANSITIONS = {
    INITIAL_STATE: {INITIAL_STATE, PAID_STATE, EXPIRED_STATE},
    PAID_STATE: {PAID_STATE},
    EXPIRED_STATE: {EXPIRED_STATE},
}


def map_gateway_status(reported: str) -> State:
    """
    PAID -> paid/confirmed, EXPIRED -> expired/cancelled,
    kazdy inny status bramki (PENDING, SETTLED w trakcie itd.) -> pending/pending.
    """
    if reported == GatewayStatus.PAID.value:
        return PAID_STATE
    if reported == GatewayStatus.EXPIRED.value:
        return EXPIRED_STATE
    return INITIAL_STATE


def current_state(payment_status: str, status: str) -> State | None:
    try:
        return PaymentStatus(payment_status), OrderStatus(status)
    except ValueError:
        return None


def can_transition(source: State | None, target: State) -> bool:
    if source is None:
        return False
    return target in TRANSITIONS.get(source, set())
