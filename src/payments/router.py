from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from src.database import get_db
from src.payments.recharge_service import RechargeService
from src.payments.schemas import WebhookAck

router = APIRouter()

@router.post("/webhook", response_model=WebhookAck)
def payment_webhook(
    payload: Dict[str, Any] = Body(...),
    signature: Optional[str] = Header(None, alias="MyFatoorah-Signature"),
    db: Session = Depends(get_db)
):
    """Payment provider callback; always acknowledged so the provider stops retrying"""
    RechargeService(db).process(payload, signature)
    return WebhookAck(success=True)
