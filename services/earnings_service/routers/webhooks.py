"""Paystack webhook handler."""

import json

from fastapi import APIRouter, Depends, Request
from libs.common.config import Settings, get_settings
from libs.common.errors import SignatureError, ValidationError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.earnings_service.dependencies import get_paystack_client
from services.earnings_service.paystack_client import PaystackClient, VerifiedTransaction
from services.earnings_service.services.reconciliation import (
    PaymentSource,
    check_gateway_confirmation,
    get_transaction,
    reconcile_payment,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["webhooks"])
logger = get_logger(__name__)

CHARGE_SUCCESS = "charge.success"


@router.post("/webhooks/paystack")
@router.post("/webhook/paystack", include_in_schema=False)
async def paystack_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    paystack: PaystackClient = Depends(get_paystack_client),
    settings: Settings = Depends(get_settings),
):
    """
    Paystack webhook endpoint (no auth; verified by x-paystack-signature).

    The signature is computed over the raw body, so the body is never parsed
    before it is checked.
    """
    raw = await request.body()
    signature = request.headers.get("x-paystack-signature")
    if not paystack.verify_signature(raw, signature):
        logger.warning("Rejected Paystack webhook with bad signature")
        raise SignatureError()

    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("Malformed webhook payload") from e

    if not isinstance(payload, dict):
        raise ValidationError("Malformed webhook payload")

    event = payload.get("event")
    data = payload.get("data")
    if not isinstance(data, dict):
        data = {}
    reference = data.get("reference")
    if event != CHARGE_SUCCESS or not reference:
        logger.info("Ignoring Paystack event %s", event)
        return {"received": True}

    tx = await get_transaction(db, reference)
    if tx is not None:
        try:
            charge = VerifiedTransaction.from_payload(data, reference)
        except (TypeError, ValueError) as e:
            raise ValidationError("Malformed webhook payload") from e
        if not check_gateway_confirmation(charge, tx.amount_units):
            logger.warning(
                "Webhook charge %s reported status %s", reference, charge.status
            )
            raise ValidationError("Payment not successful")

    outcome = await reconcile_payment(
        db, reference, source=PaymentSource.WEBHOOK, settings=settings
    )
    return {"received": True, "outcome": outcome.value}
