# app/api/deps.py
from typing import Any

from fastapi import Header, HTTPException, Request

from app.domain.errors import InvalidRequest
from app.services.invoice_client import XenditClient, verify_webhook_signature
from app.utils.settings import ADMIN_API_TOKEN, XENDIT_WEBHOOK_TOKEN


def get_invoice_client() -> XenditClient:
    return XenditClient()


def get_webhook_token() -> str:
    return XENDIT_WEBHOOK_TOKEN


async def read_json_body(request: Request) -> Any:
    """Body czytane w handlerze, zeby bledy szly jako 400 {error}, a nie 422."""
    try:
        return await request.json()
    except ValueError as e:
        raise InvalidRequest("Invalid JSON body") from e


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    #sesje/logowanie sa po stronie dostawcy tozsamosci, tu tylko token serwisowy
    if not verify_webhook_signature(ADMIN_API_TOKEN, x_admin_token or ""):
        raise HTTPException(status_code=401, detail="Invalid admin token")
