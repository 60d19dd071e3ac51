# app/api/routers/admin.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.data.database import get_db
from app.domain.errors import InvalidRequest, PersistenceError
from app.domain.schemas import AdminOrdersOut
from app.repos.order_repo import OrderRepo
from app.services.order_service import OrderService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/orders", response_model=AdminOrdersOut)
def admin_orders(
    payment_status: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    svc = OrderService(OrderRepo(db))
    try:
        return svc.admin_overview(payment_status)
    except InvalidRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
