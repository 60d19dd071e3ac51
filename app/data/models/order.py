from sqlalchemy import Column, String, Text, DateTime, Numeric, JSON
from datetime import datetime, timezone
import uuid

from app.data.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)

    #snapshot koszyka z momentu checkoutu, pozniejsze zmiany cen go nie dotycza
    products = Column(JSON, nullable=False)
    total_amount = Column(Numeric(14, 2), nullable=False)

    status = Column(String(20), nullable=False, default="pending")  # pending, confirmed, cancelled
    payment_status = Column(String(20), nullable=False, default="pending", index=True)  # pending, paid, expired

    delivery_address = Column(Text, nullable=False)
    phone = Column(String(32), nullable=False)
    notes = Column(Text, nullable=True)

    invoice_id = Column("xendit_invoice_id", String(64), nullable=True)
    invoice_url = Column(Text, nullable=True)
    # stara nazwa kolumny zostaje, raporty admina ja czytaja
    transaction_id = Column("midtrans_transaction_id", String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
