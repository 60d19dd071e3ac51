from sqlalchemy import Column, Integer, String, Numeric, DateTime
from datetime import datetime, timezone

from app.data.database import Base


class CartItemModel(Base):
    """Koszyk trzyma storefront, ten serwis tylko go czyta i czysci po platnosci."""

    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)

    product_name = Column(String, nullable=False)
    umkm_name = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(14, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
