import re
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from app.features.auth.models.user import User
from app.features.payments.models.settlement import PaymentSettlement
from app.features.payments.schemas.payment import CartItem
from app.features.payments.services.payment_service import PaymentService, describe_products, generate_order_id
from app.features.products.models.library import BoughtProduct
from app.features.products.models.product import Product
from app.platform.cache.store import InMemoryStore
from app.platform.exceptions import EmailDeliveryError, ValidationError

CART = [CartItem(id="will-be-replaced", quantity=1)]


async def seed_buyer_and_product(db_session):
    user = User(email="buyer@example.com", name="Olena Buyer", auth_provider="email")
    product = Product(title="Spring songbook", description="PDF", price=Decimal("150.00"))
    db_session.add_all([user, product])
    await db_session.commit()
    return user, product


def sent_code(email_sender):
    return email_sender.call_args[0][1]


def gateway_notification(builder, **fields):
    data = builder.encode(fields)
    return data, builder.sign(data)


async def authorize(payment_service, email_sender, product_id, amount="150"):
    order_id = await payment_service.initiate(
        "buyer@example.com", [CartItem(id=product_id, quantity=1)], amount, ["Spring songbook"]
    )
    await payment_service.verify("buyer@example.com", sent_code(email_sender))
    return order_id


async def count(db_session, model):
    return (await db_session.execute(select(func.count()).select_from(model))).scalar_one()


def test_generate_order_id_format():
    order_ids = {generate_order_id() for _ in range(50)}
    assert len(order_ids) == 50
    for order_id in order_ids:
        assert re.fullmatch(r"order_\d{13}_[0-9a-z]{9}", order_id)


@pytest.mark.parametrize(
    "product_names, expected",
    [
        (["Spring songbook", "Carols"], "Digital products: Spring songbook,Carols"),
        ("Spring songbook", "Digital products: Spring songbook"),
        (None, "Digital products:"),
    ],
)
def test_describe_products(product_names, expected):
    assert describe_products(product_names) == expected


class TestInitiate:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email, cart, amount, message",
        [
            (None, CART, 150, "Missing required fields: email, cartItems, totalAmount"),
            ("buyer@example.com", [], 150, "Missing required fields: email, cartItems, totalAmount"),
            ("buyer@example.com", CART, None, "Missing required fields: email, cartItems, totalAmount"),
            ("not-an-email", CART, 150, "Invalid email format"),
            ("buyer@example", CART, 150, "Invalid email format"),
            ("buyer@example.com", CART, 0, "totalAmount must be a positive number"),
            ("buyer@example.com", CART, -5, "totalAmount must be a positive number"),
            ("buyer@example.com", CART, "abc", "Invalid totalAmount"),
        ],
    )
    async def test_rejects_invalid_input(self, payment_service, email_sender, email, cart, amount, message):
        with pytest.raises(ValidationError) as exc_info:
            await payment_service.initiate(email, cart, amount, ["Spring songbook"])

        assert exc_info.value.message == message
        email_sender.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_code_and_returns_order_id(self, payment_service, email_sender):
        order_id = await payment_service.initiate("Buyer@Example.com", CART, "150", ["Spring songbook"])

        assert re.fullmatch(r"order_\d{13}_[0-9a-z]{9}", order_id)
        email_sender.assert_called_once()
        email, code, expires_in = email_sender.call_args[0]
        assert email == "buyer@example.com"
        assert re.fullmatch(r"\d{6}", code)
        assert expires_in == 10

    @pytest.mark.asyncio
    async def test_email_failure_keeps_ledger_entry(self, checkout_builder):
        sender = MagicMock(side_effect=EmailDeliveryError("SMTP delivery failed: connection refused"))
        service = PaymentService(InMemoryStore(), checkout_builder, send_verification_email=sender)

        with pytest.raises(EmailDeliveryError) as exc_info:
            await service.initiate("buyer@example.com", CART, 150, "Spring songbook")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message.startswith("Failed to send verification email:")

        # the code was issued before the send failed and is still redeemable
        code = sender.call_args[0][1]
        checkout = await service.verify("buyer@example.com", code)
        assert checkout.redirect_url.startswith("https://www.liqpay.ua/api/3/checkout?data=")


class TestVerify:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("email, code", [(None, "123456"), ("buyer@example.com", None), ("", "")])
    async def test_requires_email_and_code(self, payment_service, email, code):
        with pytest.raises(ValidationError) as exc_info:
            await payment_service.verify(email, code)
        assert exc_info.value.message == "Email and verification code are required"

    @pytest.mark.asyncio
    async def test_correct_code_returns_checkout_and_authorizes_order(self, payment_service, email_sender):
        order_id = await payment_service.initiate("buyer@example.com", CART, 150, ["Spring songbook"])

        checkout = await payment_service.verify("buyer@example.com", sent_code(email_sender))

        assert checkout.order_id == order_id
        assert "&signature=" in checkout.redirect_url
        assert await payment_service.store.get(f"authorized-order:{order_id}") is not None

    @pytest.mark.asyncio
    async def test_numeric_code_is_accepted(self, payment_service, email_sender):
        await payment_service.initiate("buyer@example.com", CART, 150, ["Spring songbook"])
        code = sent_code(email_sender)
        if code.startswith("0"):
            pytest.skip("leading zero codes cannot be sent as JSON numbers")
        assert await payment_service.verify("buyer@example.com", int(code))


class TestWebhook:
    @pytest.mark.asyncio
    async def test_success_settles_and_fulfils_once(self, payment_service, email_sender, checkout_builder, db_session):
        user, product = await seed_buyer_and_product(db_session)
        order_id = await authorize(payment_service, email_sender, product.id)
        data, signature = gateway_notification(
            checkout_builder, order_id=order_id, status="success", amount=150.0, currency="UAH", payment_id=123
        )

        assert await payment_service.handle_webhook(db_session, data, signature) == "settled"
        assert await payment_service.handle_webhook(db_session, data, signature) == "duplicate"

        settlement = (await db_session.execute(select(PaymentSettlement))).scalar_one()
        assert settlement.order_id == order_id
        assert settlement.status == "success"
        assert settlement.user_id == user.id
        assert settlement.payment_id == "123"

        bought = (await db_session.execute(select(BoughtProduct))).scalars().all()
        assert [(b.user_id, b.product_id, b.order_id) for b in bought] == [(user.id, product.id, order_id)]
        assert await payment_service.store.get(f"authorized-order:{order_id}") is None

    @pytest.mark.asyncio
    async def test_bad_signature_is_rejected_without_side_effects(
        self, payment_service, email_sender, checkout_builder, db_session
    ):
        _, product = await seed_buyer_and_product(db_session)
        order_id = await authorize(payment_service, email_sender, product.id)
        data, _ = gateway_notification(checkout_builder, order_id=order_id, status="success", amount=150)

        assert await payment_service.handle_webhook(db_session, data, "Zm9yZ2Vk") == "rejected"
        assert await payment_service.handle_webhook(db_session, data, None) == "rejected"
        assert await count(db_session, PaymentSettlement) == 0

    @pytest.mark.asyncio
    async def test_unknown_order_is_recorded_for_reconciliation(self, payment_service, checkout_builder, db_session):
        data, signature = gateway_notification(
            checkout_builder, order_id="order_0_unknown00", status="success", amount=150, currency="UAH", payment_id=77
        )

        assert await payment_service.handle_webhook(db_session, data, signature) == "unknown_order"
        assert await payment_service.handle_webhook(db_session, data, signature) == "duplicate"

        settlement = (await db_session.execute(select(PaymentSettlement))).scalar_one()
        assert settlement.status == "unknown_order"
        assert settlement.amount == Decimal("150")
        assert settlement.payment_id == "77"
        assert settlement.user_id is None
        assert await count(db_session, BoughtProduct) == 0

    @pytest.mark.asyncio
    async def test_success_after_authorization_lapsed_is_recorded_not_fulfilled(
        self, payment_service, email_sender, checkout_builder, db_session
    ):
        _, product = await seed_buyer_and_product(db_session)
        order_id = await authorize(payment_service, email_sender, product.id)
        # the authorized order outlived AUTHORIZED_ORDER_TTL_HOURS in the store
        await payment_service.store.delete(f"authorized-order:{order_id}")
        data, signature = gateway_notification(checkout_builder, order_id=order_id, status="success", amount=150)

        assert await payment_service.handle_webhook(db_session, data, signature) == "unknown_order"

        settlement = (await db_session.execute(select(PaymentSettlement))).scalar_one()
        assert settlement.order_id == order_id
        assert settlement.status == "unknown_order"
        assert await count(db_session, BoughtProduct) == 0

    @pytest.mark.asyncio
    async def test_intermediate_status_is_only_logged(self, payment_service, email_sender, checkout_builder, db_session):
        _, product = await seed_buyer_and_product(db_session)
        order_id = await authorize(payment_service, email_sender, product.id)
        data, signature = gateway_notification(checkout_builder, order_id=order_id, status="processing")

        assert await payment_service.handle_webhook(db_session, data, signature) == "ignored"
        assert await count(db_session, PaymentSettlement) == 0

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_a_later_success_still_settles(
        self, payment_service, email_sender, checkout_builder, db_session
    ):
        _, product = await seed_buyer_and_product(db_session)
        order_id = await authorize(payment_service, email_sender, product.id)

        data, signature = gateway_notification(checkout_builder, order_id=order_id, status="failure", amount=150)
        assert await payment_service.handle_webhook(db_session, data, signature) == "failed"
        assert await payment_service.handle_webhook(db_session, data, signature) == "duplicate"
        assert await count(db_session, BoughtProduct) == 0

        data, signature = gateway_notification(checkout_builder, order_id=order_id, status="success", amount=150)
        assert await payment_service.handle_webhook(db_session, data, signature) == "settled"

        settlement = (await db_session.execute(select(PaymentSettlement))).scalar_one()
        assert settlement.status == "success"
        assert await count(db_session, BoughtProduct) == 1

    @pytest.mark.asyncio
    async def test_sandbox_status_counts_as_success_in_sandbox_mode(
        self, payment_service, email_sender, checkout_builder, db_session
    ):
        _, product = await seed_buyer_and_product(db_session)
        order_id = await authorize(payment_service, email_sender, product.id)
        data, signature = gateway_notification(checkout_builder, order_id=order_id, status="sandbox", amount=150)

        assert await payment_service.handle_webhook(db_session, data, signature) == "settled"

    @pytest.mark.asyncio
    async def test_amount_mismatch_is_recorded_without_fulfilment(
        self, payment_service, email_sender, checkout_builder, db_session
    ):
        _, product = await seed_buyer_and_product(db_session)
        order_id = await authorize(payment_service, email_sender, product.id)
        data, signature = gateway_notification(checkout_builder, order_id=order_id, status="success", amount=1)

        assert await payment_service.handle_webhook(db_session, data, signature) == "failed"
        settlement = (await db_session.execute(select(PaymentSettlement))).scalar_one()
        assert settlement.status == "amount_mismatch"
        assert await count(db_session, BoughtProduct) == 0

    @pytest.mark.asyncio
    async def test_guest_purchase_is_settled_without_fulfilment(
        self, payment_service, email_sender, checkout_builder, db_session
    ):
        product = Product(title="Autumn songbook", description="PDF", price=Decimal("150.00"))
        db_session.add(product)
        await db_session.commit()
        order_id = await authorize(payment_service, email_sender, product.id)
        data, signature = gateway_notification(checkout_builder, order_id=order_id, status="success", amount=150)

        assert await payment_service.handle_webhook(db_session, data, signature) == "settled"
        settlement = (await db_session.execute(select(PaymentSettlement))).scalar_one()
        assert settlement.user_id is None
        assert await count(db_session, BoughtProduct) == 0
