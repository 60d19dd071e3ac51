# app/api/routers/payment.py
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.deps import get_invoice_client, get_webhook_token, read_json_body
from app.data.database import get_db
from app.domain.errors import InvalidRequest, OrderNotFound, PersistenceError, Unauthorized
from app.repos.cart_repo import CartRepo
from app.repos.order_repo import OrderRepo
from app.services.invoice_client import XenditClient
from app.services.webhook_service import WebhookService
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/payment", tags=["payment"])


def get_service(db: Session, invoice_client: XenditClient, webhook_token: str):
    return WebhookService(
        order_repo=OrderRepo(db),
        cart_repo=CartRepo(db),
        invoice_client=invoice_client,
        webhook_token=webhook_token,
    )


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    x_callback_token: str | None = Header(default=None),
    db: Session = Depends(get_db),
    invoice_client: XenditClient = Depends(get_invoice_client),
    webhook_token: str = Depends(get_webhook_token),
):
    svc = get_service(db, invoice_client, webhook_token)
    try:
        #token sprawdzany zanim body zostanie sparsowane
        svc.authenticate(x_callback_token)
        payload = await read_json_body(request)
        await run_in_threadpool(svc.handle, x_callback_token, payload)
    except Unauthorized as e:
        return JSONResponse(status_code=401, content={"error": str(e)})
    except InvalidRequest as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except OrderNotFound as e:
        #callback bez pasujacego zamowienia - 200, zeby bramka nie ponawiala w nieskonczonosc
        logger.warning(f"Webhook for unknown order {e.order_id}, acknowledged without changes")
        return {"success": False, "error": "Order not found"}
    except PersistenceError as e:
        logger.error(f"Order update error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to update order"})

    return {"success": True}
