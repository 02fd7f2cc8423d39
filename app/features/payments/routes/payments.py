from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.payments.schemas.payment import InitiatePaymentRequest, VerifyPaymentRequest, WebhookNotification
from app.features.payments.services.payment_service import PaymentService, get_payment_service
from app.platform.db.session import get_db
from app.platform.logger import get_logger
from app.platform.response import api_success

logger = get_logger("payments_route")

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/initiate", summary="Send a verification code for a new order")
async def initiate_payment(
    request: InitiatePaymentRequest,
    payment_service: PaymentService = Depends(get_payment_service),
):
    """
    Start a purchase: a 6-digit code is emailed to **email** and the order
    waits for it. 400 on invalid input, 500 when the email cannot be sent.
    """
    order_id = await payment_service.initiate(
        email=request.email,
        cart_items=request.cart_items,
        total_amount=request.total_amount,
        product_names=request.product_names,
    )
    return api_success(message="Verification code sent to your email", orderId=order_id)


@router.post("/verify", summary="Exchange the emailed code for a checkout URL")
async def verify_payment(
    request: VerifyPaymentRequest,
    payment_service: PaymentService = Depends(get_payment_service),
):
    checkout = await payment_service.verify(request.email, request.code)
    return api_success(checkout_url=checkout.redirect_url, order_id=checkout.order_id)


async def _read_notification(request: Request) -> WebhookNotification:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
    else:
        body = dict(await request.form())
    return WebhookNotification.model_validate(body)


@router.post("/webhook", response_class=PlainTextResponse, summary="LiqPay server notification")
async def payment_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payment_service: PaymentService = Depends(get_payment_service),
):
    """
    Always answers 200 OK: LiqPay retries every other answer, and settlement
    is idempotent per order id. Failures are logged instead.
    """
    try:
        notification = await _read_notification(request)
        outcome = await payment_service.handle_webhook(db, notification.data, notification.signature)
        logger.info(f"Payment notification processed: {outcome}")
    except Exception:
        logger.exception("Payment notification processing failed")
    return PlainTextResponse("OK", status_code=200)
