"""
Payment flow: email verification in front of the LiqPay hosted checkout.

    initiate  -> code emailed, order pending in the ledger
    verify    -> code consumed once, order authorized, checkout URL returned
    webhook   -> gateway notification settles the authorized order

Settlement is written to `payment_settlements` (unique order_id) in the same
transaction as the `bought_products` rows that fulfil it, so a redelivered
notification can never fulfil an order twice.
"""
import json
import re
import secrets
import string
import time
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.features.auth.models.user import User
from app.features.payments.models.settlement import PaymentSettlement
from app.features.payments.schemas.payment import CartItem
from app.features.payments.services.checkout import CheckoutBuilder, CheckoutRequest, LiqPayCredentials
from app.features.payments.services.ledger import Clock, OrderIntent, VerificationLedger, utcnow
from app.features.products.models.library import BoughtProduct
from app.features.products.models.product import Product
from app.platform.cache.redis import get_redis
from app.platform.cache.store import InMemoryStore, KeyValueStore, RedisStore
from app.platform.config import settings
from app.platform.exceptions import EmailDeliveryError, ValidationError
from app.platform.logger import get_logger
from app.platform.services.email import send_payment_verification_email

logger = get_logger("payment_service")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ORDER_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase

SUCCESS_STATUSES = {"success"}
FAILURE_STATUSES = {"failure", "error", "reversed"}


def generate_order_id() -> str:
    """order_<epoch ms>_<9 base36 chars>"""
    suffix = "".join(secrets.choice(ORDER_SUFFIX_ALPHABET) for _ in range(9))
    return f"order_{int(time.time() * 1000)}_{suffix}"


def describe_products(product_names: Any) -> str:
    if isinstance(product_names, (list, tuple)):
        product_names = ",".join(str(name) for name in product_names)
    return f"Digital products: {product_names or ''}".strip()


def parse_amount(total_amount: Any) -> Decimal:
    if isinstance(total_amount, bool):
        raise ValidationError("Invalid totalAmount")
    try:
        amount = Decimal(str(total_amount))
    except InvalidOperation:
        raise ValidationError("Invalid totalAmount")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("totalAmount must be a positive number")
    return amount


class AuthorizedOrder(OrderIntent):
    verified_at: str


class PaymentService:
    authorized_prefix = "authorized-order"

    def __init__(
        self,
        store: KeyValueStore,
        builder: CheckoutBuilder,
        ledger: Optional[VerificationLedger] = None,
        send_verification_email: Callable[[str, str, int], str] = send_payment_verification_email,
        clock: Clock = utcnow,
        sandbox: bool = settings.LIQPAY_SANDBOX,
    ):
        self.store = store
        self.builder = builder
        self.clock = clock
        self.ledger = ledger or VerificationLedger(
            store,
            ttl=timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES),
            clock=clock,
            retention=timedelta(hours=settings.VERIFICATION_ENTRY_RETENTION_HOURS),
        )
        self.send_verification_email = send_verification_email
        self.success_statuses = SUCCESS_STATUSES | ({"sandbox"} if sandbox else set())

    # ── Step 1: initiate ─────────────────────────────

    async def initiate(
        self,
        email: Optional[str],
        cart_items: Optional[List[CartItem]],
        total_amount: Any,
        product_names: Any = None,
    ) -> str:
        """Email a verification code for a new order and return its id."""
        if not email or not cart_items or total_amount in (None, ""):
            raise ValidationError("Missing required fields: email, cartItems, totalAmount")

        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format")

        intent = OrderIntent(
            order_id=generate_order_id(),
            amount=parse_amount(total_amount),
            currency=settings.PAYMENT_CURRENCY,
            description=describe_products(product_names),
            cart_items=[item.model_dump(by_alias=True, exclude_none=True) for item in cart_items],
            product_names=product_names,
            email=email,
        )

        code = await self.ledger.issue(email, intent)

        expires_in = int(self.ledger.ttl.total_seconds() // 60)
        try:
            message_id = await run_in_threadpool(self.send_verification_email, email, code, expires_in)
        except EmailDeliveryError as e:
            raise EmailDeliveryError(f"Failed to send verification email: {e.message}") from e

        logger.info(f"Verification email for order {intent.order_id} sent ({message_id})")
        return intent.order_id

    # ── Step 2: verify ───────────────────────────────

    async def verify(self, email: Optional[str], code: Any) -> CheckoutRequest:
        if not email or code in (None, ""):
            raise ValidationError("Email and verification code are required")

        intent = await self.ledger.consume(email, str(code))
        checkout = self.builder.build(intent)

        authorized = AuthorizedOrder(**intent.model_dump(), verified_at=self.clock().isoformat())
        recorded = await self.store.put_if_absent(
            self._authorized_key(intent.order_id),
            authorized.model_dump_json(),
            ttl_seconds=settings.AUTHORIZED_ORDER_TTL_HOURS * 3600,
        )
        if not recorded:
            # order ids are unique per initiate; an existing record means a stale duplicate
            logger.warning(f"Order {intent.order_id} was already authorized")

        logger.info(f"Order {intent.order_id} authorized for checkout")
        return checkout

    # ── Step 3: gateway notification ─────────────────

    async def handle_webhook(self, db: AsyncSession, data: Optional[str], signature: Optional[str]) -> str:
        """
        Process a LiqPay notification and return what happened to it:
        rejected, ignored, unknown_order, duplicate, settled or failed.
        """
        if not data or not signature or not self.builder.verify_signature(data, signature):
            logger.warning("Payment notification rejected: bad or missing signature")
            return "rejected"

        payload = self.builder.decode_payload(data)
        order_id = payload.get("order_id")
        status = str(payload.get("status") or "").lower()

        logger.info(
            f"Payment notification received: order_id={order_id}, status={status}, "
            f"amount={payload.get('amount')}, currency={payload.get('currency')}"
        )

        if not order_id:
            logger.warning("Payment notification without order_id ignored")
            return "ignored"

        if status in self.success_statuses:
            return await self._settle(db, str(order_id), payload)
        if status in FAILURE_STATUSES:
            return await self._record_failure(db, str(order_id), payload)

        logger.info(f"Order {order_id} in intermediate status {status}, nothing to do")
        return "ignored"

    async def _settle(self, db: AsyncSession, order_id: str, payload: Dict[str, Any]) -> str:
        existing = await self._get_settlement(db, order_id)
        if existing is not None and existing.status == "success":
            logger.info(f"Order {order_id} already settled, duplicate notification")
            return "duplicate"

        order = await self._get_authorized(order_id)
        if order is None:
            if existing is not None:
                return "duplicate"
            return await self._record_unknown_payment(db, order_id, payload)

        status = "success"
        if not self._amount_matches(order, payload):
            logger.warning(f"Order {order_id} paid {payload.get('amount')} but expected {order.amount}")
            status = "amount_mismatch"

        user = await self._get_user_by_email(db, order.email)
        settlement = existing or PaymentSettlement(order_id=order_id)
        self._fill_settlement(settlement, status, payload, order, user)
        db.add(settlement)

        granted = 0
        if status == "success" and user is not None:
            granted = await self._grant_products(db, user.id, order_id, order.cart_items)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(f"Order {order_id} settled concurrently, duplicate notification")
            return "duplicate"

        if status == "success":
            await self.store.delete(self._authorized_key(order_id))
        logger.info(f"Order {order_id} settled with status {status}, {granted} product(s) granted")
        return "settled" if status == "success" else "failed"

    async def _record_unknown_payment(self, db: AsyncSession, order_id: str, payload: Dict[str, Any]) -> str:
        """
        Money arrived for an order we hold no authorization for (never verified,
        or past AUTHORIZED_ORDER_TTL_HOURS). Keep the gateway record so the
        payment can be reconciled by hand; nothing is fulfilled.
        """
        logger.warning(f"Payment notification for unknown order {order_id}, recorded for reconciliation")
        payment_id = payload.get("payment_id")
        db.add(
            PaymentSettlement(
                order_id=order_id,
                status="unknown_order",
                gateway_status=str(payload.get("status") or ""),
                amount=self._payload_amount(payload),
                currency=payload.get("currency"),
                payment_id=str(payment_id) if payment_id is not None else None,
                payload=json.loads(json.dumps(payload, default=str)),
            )
        )
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            return "duplicate"
        return "unknown_order"

    async def _record_failure(self, db: AsyncSession, order_id: str, payload: Dict[str, Any]) -> str:
        if await self._get_settlement(db, order_id) is not None:
            return "duplicate"

        order = await self._get_authorized(order_id)
        if order is None:
            logger.warning(f"Failure notification for unknown order {order_id}")
            return "unknown_order"

        user = await self._get_user_by_email(db, order.email)
        settlement = PaymentSettlement(order_id=order_id)
        self._fill_settlement(settlement, "failed", payload, order, user)
        db.add(settlement)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            return "duplicate"

        # the authorized order stays so a later successful retry can still settle it
        logger.info(f"Order {order_id} payment failed ({payload.get('status')})")
        return "failed"

    async def _grant_products(
        self, db: AsyncSession, user_id: str, order_id: str, cart_items: Iterable[Dict[str, Any]]
    ) -> int:
        wanted = set()
        for item in cart_items:
            product_id = CartItem.model_validate(item).resolved_product_id
            if product_id:
                wanted.add(product_id)
        if not wanted:
            return 0

        known = await db.execute(select(Product.id).where(Product.id.in_(wanted)))
        owned = await db.execute(
            select(BoughtProduct.product_id).where(
                BoughtProduct.user_id == user_id, BoughtProduct.product_id.in_(wanted)
            )
        )
        to_grant = set(known.scalars().all()) - set(owned.scalars().all())

        for product_id in sorted(to_grant):
            db.add(BoughtProduct(user_id=user_id, product_id=product_id, order_id=order_id))
        return len(to_grant)

    @staticmethod
    def _fill_settlement(
        settlement: PaymentSettlement,
        status: str,
        payload: Dict[str, Any],
        order: AuthorizedOrder,
        user: Optional[User],
    ) -> None:
        settlement.status = status
        settlement.gateway_status = str(payload.get("status") or "")
        settlement.amount = order.amount
        settlement.currency = payload.get("currency") or order.currency
        settlement.email = order.email
        settlement.user_id = user.id if user else None
        payment_id = payload.get("payment_id")
        settlement.payment_id = str(payment_id) if payment_id is not None else None
        settlement.payload = json.loads(json.dumps(payload, default=str))

    @staticmethod
    def _payload_amount(payload: Dict[str, Any]) -> Optional[Decimal]:
        try:
            return Decimal(str(payload["amount"])) if payload.get("amount") is not None else None
        except InvalidOperation:
            return None

    @staticmethod
    def _amount_matches(order: AuthorizedOrder, payload: Dict[str, Any]) -> bool:
        if payload.get("amount") is None:
            return True
        try:
            return Decimal(str(payload["amount"])) == order.amount
        except InvalidOperation:
            return False

    async def _get_authorized(self, order_id: str) -> Optional[AuthorizedOrder]:
        raw = await self.store.get(self._authorized_key(order_id))
        return AuthorizedOrder.model_validate_json(raw) if raw else None

    @staticmethod
    async def _get_settlement(db: AsyncSession, order_id: str) -> Optional[PaymentSettlement]:
        result = await db.execute(select(PaymentSettlement).where(PaymentSettlement.order_id == order_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    def _authorized_key(self, order_id: str) -> str:
        return f"{self.authorized_prefix}:{order_id}"


_payment_service: Optional[PaymentService] = None


def get_payment_service() -> PaymentService:
    """Process-wide PaymentService; Redis-backed when REDIS_URL is set."""
    global _payment_service
    if _payment_service is None:
        redis = get_redis()
        store: KeyValueStore = RedisStore(redis) if redis is not None else InMemoryStore()
        if redis is None:
            logger.warning("REDIS_URL not set, payment state is kept in process memory")
        _payment_service = PaymentService(store, CheckoutBuilder(LiqPayCredentials.from_settings()))
    return _payment_service
