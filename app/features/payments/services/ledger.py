"""
Verification ledger: one pending email-verification code per claimant.

issue() stores a fresh code together with the order being authorized,
overwriting whatever the claimant had pending. consume() hands the order back
exactly once: the entry is removed with a compare-and-delete on the exact
value that was read, so of several concurrent consumers at most one wins and
the others see "not found".
"""
import hmac
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from app.features.auth.utils.security import generate_verification_code
from app.platform.cache.store import KeyValueStore
from app.platform.exceptions import ExpiredError, ValidationError
from app.platform.logger import get_logger

logger = get_logger("verification_ledger")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationNotFoundError(ValidationError):
    code = "VERIFICATION_NOT_FOUND"
    message = "Code not found or expired"


class VerificationExpiredError(ExpiredError):
    code = "VERIFICATION_EXPIRED"
    message = "Code expired"


class VerificationMismatchError(ValidationError):
    code = "VERIFICATION_MISMATCH"
    message = "Invalid code"


class OrderIntent(BaseModel):
    """What is being bought, captured at initiate and carried unchanged to checkout."""

    order_id: str
    amount: Decimal
    currency: str
    description: str
    cart_items: List[Dict[str, Any]] = Field(default_factory=list)
    product_names: Optional[Any] = None
    email: str


class VerificationEntry(BaseModel):
    code: str
    expires_at: datetime
    intent: OrderIntent


class VerificationLedger:
    key_prefix = "verification"

    def __init__(
        self,
        store: KeyValueStore,
        ttl: timedelta = timedelta(minutes=10),
        clock: Clock = utcnow,
        code_factory: Callable[[], str] = generate_verification_code,
        retention: timedelta = timedelta(hours=24),
    ):
        self.store = store
        self.ttl = ttl
        # how long the store keeps an entry nobody consumed; must outlive ttl
        self.retention = max(retention, ttl)
        self.clock = clock
        self.code_factory = code_factory

    def _key(self, email: str) -> str:
        return f"{self.key_prefix}:{email.strip().lower()}"

    async def issue(self, email: str, intent: OrderIntent) -> str:
        """Store a new code for `email` and return it. Any previous entry is replaced."""
        code = self.code_factory()
        entry = VerificationEntry(code=code, expires_at=self.clock() + self.ttl, intent=intent)
        # the store keeps entries well past expires_at so consume() reports "expired"
        await self.store.put(
            self._key(email),
            entry.model_dump_json(),
            ttl_seconds=int(self.retention.total_seconds()),
        )
        logger.info(f"Verification code issued for order {intent.order_id}")
        return code

    async def consume(self, email: str, code: str) -> OrderIntent:
        """
        Check `code` against the pending entry and hand back its order.

        Raises:
            VerificationNotFoundError: nothing pending, or another request consumed it first
            VerificationExpiredError: the entry is past its expiry; it is removed
            VerificationMismatchError: wrong code; the entry stays for another attempt
        """
        key = self._key(email)
        raw = await self.store.get(key)
        if raw is None:
            raise VerificationNotFoundError()

        entry = VerificationEntry.model_validate_json(raw)

        if self.clock() > entry.expires_at:
            await self.store.compare_and_delete(key, raw)
            logger.info(f"Verification code expired for order {entry.intent.order_id}")
            raise VerificationExpiredError()

        if not hmac.compare_digest(entry.code.encode(), str(code).strip().encode()):
            raise VerificationMismatchError()

        if not await self.store.compare_and_delete(key, raw):
            raise VerificationNotFoundError()

        logger.info(f"Verification code consumed for order {entry.intent.order_id}")
        return entry.intent
