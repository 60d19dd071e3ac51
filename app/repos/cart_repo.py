# app/repos/cart_repo.py
from typing import List

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.cart_item import CartItemModel
from app.domain.errors import PersistenceError


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_items(self, user_id: str) -> List[CartItemModel]:
        try:
            return list(
                self.db.execute(
                    select(CartItemModel).where(CartItemModel.user_id == user_id)
                ).scalars().all()
            )
        except SQLAlchemyError as e:
            raise PersistenceError(str(e)) from e

    def delete_cart_items(self, user_id: str) -> int:
        #pusty koszyk to nie blad, po prostu 0 usunietych
        try:
            result = self.db.execute(
                delete(CartItemModel).where(CartItemModel.user_id == user_id)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e)) from e
        return result.rowcount
