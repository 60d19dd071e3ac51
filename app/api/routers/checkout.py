# app/api/routers/checkout.py
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.deps import get_invoice_client, read_json_body
from app.data.database import get_db
from app.domain.errors import (
    InvalidRequest,
    InvoiceCreationFailed,
    OrderCreationFailed,
    OrderNotFound,
    PersistenceError,
)
from app.repos.order_repo import OrderRepo
from app.services.checkout_service import CheckoutService
from app.services.invoice_client import XenditClient
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


def get_service(db: Session, invoice_client: XenditClient):
    return CheckoutService(
        order_repo=OrderRepo(db),
        invoice_client=invoice_client,
    )


def _error(status_code: int, error: str, **extra):
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


@router.post("")
async def checkout(
    request: Request,
    db: Session = Depends(get_db),
    invoice_client: XenditClient = Depends(get_invoice_client),
):
    """
    Tworzy zamowienie pending i fakture w bramce.
    Klient dostaje invoiceUrl i jest przekierowany na strone platnosci.
    """
    svc = get_service(db, invoice_client)
    try:
        payload = await read_json_body(request)
        result = await run_in_threadpool(svc.checkout, payload)
    except InvalidRequest as e:
        return _error(400, str(e))
    except OrderCreationFailed as e:
        return _error(500, "Failed to create order", details=str(e))
    except InvoiceCreationFailed as e:
        return _error(500, "Failed to create Xendit invoice", details=e.details, orderId=e.order_id)

    return {"success": True, **result}


@router.post("/{order_id}/invoice")
async def retry_invoice(
    order_id: str,
    request: Request,
    db: Session = Depends(get_db),
    invoice_client: XenditClient = Depends(get_invoice_client),
):
    """
    Ponowna proba wystawienia faktury dla zamowienia bez faktury.
    """
    svc = get_service(db, invoice_client)
    try:
        payload = await read_json_body(request)
        result = await run_in_threadpool(svc.retry_invoice, order_id, payload)
    except InvalidRequest as e:
        return _error(400, str(e))
    except PermissionError as e:
        return _error(403, str(e))
    except OrderNotFound as e:
        return _error(404, str(e))
    except InvoiceCreationFailed as e:
        return _error(500, "Failed to create Xendit invoice", details=e.details, orderId=e.order_id)
    except PersistenceError as e:
        logger.error(f"Invoice retry for order {order_id} failed: {e}")
        return _error(500, "Failed to load order")

    return {"success": True, **result}
