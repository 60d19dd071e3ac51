# app/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.errors import OrderNotFound, PersistenceError
from app.domain.schemas import OrderOut
from app.repos.order_repo import OrderRepo
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(OrderRepo(db))


@router.get("", response_model=List[OrderOut])
def list_orders(
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """
    Historia zamówień użytkownika, najnowsze pierwsze.
    """
    svc = get_service(db)
    try:
        return svc.list_user_orders(user_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    user_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """
    Pobiera szczegóły zamówienia.
    """
    svc = get_service(db)
    try:
        return svc.get_order(order_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
