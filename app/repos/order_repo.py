# app/repos/order_repo.py
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.domain.errors import OrderNotFound, PersistenceError, ValidationError

REQUIRED_FIELDS = (
    "user_id",
    "products",
    "total_amount",
    "status",
    "payment_status",
    "delivery_address",
    "phone",
)

#total_amount, products i user_id sa niezmienne po utworzeniu
PATCHABLE_FIELDS = frozenset({
    "invoice_id",
    "invoice_url",
    "transaction_id",
    "status",
    "payment_status",
    "updated_at",
})


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, fields: dict) -> OrderModel:
        missing = [f for f in REQUIRED_FIELDS if fields.get(f) in (None, "", [])]
        if missing:
            raise ValidationError(f"Missing order fields: {', '.join(missing)}")

        order = OrderModel(**fields)
        try:
            self.db.add(order)
            self.db.commit()
            self.db.refresh(order)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e
        return order

    def get_order(self, order_id: str) -> OrderModel:
        try:
            order = self.db.get(OrderModel, order_id)
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e
        if not order:
            raise OrderNotFound(order_id)
        return order

    def update_order(self, order_id: str, fields: dict) -> None:
        unknown = set(fields) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not patchable: {', '.join(sorted(unknown))}")
        if not fields:
            return

        try:
            #patch pojedynczego wiersza, nietkniete kolumny zostaja
            result = self.db.execute(
                update(OrderModel)
                .where(OrderModel.id == order_id)
                .values({getattr(OrderModel, name): value for name, value in fields.items()})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise OrderNotFound(order_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e

    def transition(self, order_id: str, source: Tuple[str, str], fields: dict) -> bool:
        """
        Patch tylko gdy zamowienie jest nadal w stanie source (payment_status, status).
        False - ktos zmienil stan w miedzyczasie (albo zamowienia nie ma).
        """
        unknown = set(fields) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not patchable: {', '.join(sorted(unknown))}")

        payment_status, status = source
        try:
            result = self.db.execute(
                update(OrderModel)
                .where(
                    OrderModel.id == order_id,
                    OrderModel.payment_status == payment_status,
                    OrderModel.status == status,
                )
                .values({getattr(OrderModel, name): value for name, value in fields.items()})
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e
        return result.rowcount == 1

    def attach_invoice(self, order_id: str, invoice_id: str, invoice_url: str, updated_at: datetime) -> bool:
        """
        Podpina fakture tylko gdy zamowienie jeszcze zadnej nie ma.
        False - referencja juz istnieje (albo zamowienia nie ma).
        """
        try:
            result = self.db.execute(
                update(OrderModel)
                .where(OrderModel.id == order_id, OrderModel.invoice_id.is_(None))
                .values({
                    OrderModel.invoice_id: invoice_id,
                    OrderModel.invoice_url: invoice_url,
                    OrderModel.updated_at: updated_at,
                })
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e
        return result.rowcount == 1

    def list_orders(self, payment_status: str | None = None, user_id: str | None = None) -> List[OrderModel]:
        query = select(OrderModel)
        if payment_status:
            query = query.where(OrderModel.payment_status == payment_status)
        if user_id:
            query = query.where(OrderModel.user_id == user_id)
        query = query.order_by(OrderModel.created_at.desc())

        try:
            return list(self.db.execute(query).scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e

    def list_unlinked(self, older_than: datetime) -> List[OrderModel]:
        #oplacone bez linku tez trzeba podpiac, anulowanych nie ruszamy
        query = (
            select(OrderModel)
            .where(
                OrderModel.invoice_id.is_(None),
                OrderModel.payment_status.in_(("pending", "paid")),
                OrderModel.created_at < older_than,
            )
            .order_by(OrderModel.created_at)
        )
        try:
            return list(self.db.execute(query).scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e

    def expire_unlinked(self, order_id: str, updated_at: datetime) -> bool:
        #tylko jesli nadal pending/pending bez faktury - webhook mogl nas wyprzedzic
        try:
            result = self.db.execute(
                update(OrderModel)
                .where(
                    OrderModel.id == order_id,
                    OrderModel.payment_status == "pending",
                    OrderModel.status == "pending",
                    OrderModel.invoice_id.is_(None),
                )
                .values({
                    OrderModel.payment_status: "expired",
                    OrderModel.status: "cancelled",
                    OrderModel.updated_at: updated_at,
                })
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e
        return result.rowcount == 1
