# app/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional, Union
from decimal import Decimal
from datetime import datetime


class CartItemIn(BaseModel):
    """Pozycja koszyka przeslana przez klienta (snapshot)."""

    product_name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., gt=0)
    umkm_name: Optional[str] = None
    product_id: Optional[Union[str, int]] = None

    model_config = ConfigDict(extra="allow")


class CheckoutIn(BaseModel):
    """Schema dla checkoutu, pola jak wysyla storefront (camelCase)."""

    user_id: str = Field(..., alias="userId", min_length=1)
    customer_name: str = Field(..., alias="customerName", min_length=1)
    customer_email: str = Field(..., alias="customerEmail", min_length=3)
    customer_phone: str = Field(..., alias="customerPhone", min_length=1)
    customer_address: str = Field(..., alias="customerAddress", min_length=1)
    notes: Optional[str] = None
    cart_items: List[CartItemIn] = Field(..., alias="cartItems", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class CheckoutOut(BaseModel):
    success: bool = True
    orderId: str
    invoiceUrl: str
    invoiceId: str


class RetryInvoiceIn(BaseModel):
    """Ponowienie faktury dla istniejacego zamowienia."""

    user_id: str = Field(..., alias="userId", min_length=1)
    customer_name: str = Field(..., alias="customerName", min_length=1)
    customer_email: str = Field(..., alias="customerEmail", min_length=3)

    model_config = ConfigDict(populate_by_name=True)


class InvoiceCustomer(BaseModel):
    name: str
    email: str
    phone: str
    address: str


class InvoiceItem(BaseModel):
    name: str
    quantity: int
    price: Decimal


class Invoice(BaseModel):
    """Faktura po stronie bramki - trzymamy tylko id i url."""

    id: str = Field(..., min_length=1)
    invoice_url: str = Field(..., min_length=1)
    status: str = "PENDING"
    expiry_date: Optional[str] = None
    external_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class WebhookPayload(BaseModel):
    """Callback bramki, reszta pol (amount, paid_at, ...) jest ignorowana."""

    external_id: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="ignore")


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: str
    user_id: str
    products: List[dict]
    total_amount: Decimal
    status: str
    payment_status: str
    delivery_address: str
    phone: str
    notes: Optional[str] = None
    invoice_id: Optional[str] = None
    invoice_url: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrdersSummary(BaseModel):
    count: int
    revenue: Decimal
    paid: int
    pending: int


class AdminOrdersOut(BaseModel):
    orders: List[OrderOut]
    summary: OrdersSummary
