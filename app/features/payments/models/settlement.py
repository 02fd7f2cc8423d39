from sqlalchemy import JSON, Column, ForeignKey, Numeric, String

from app.platform.db.base import BaseModel


class PaymentSettlement(BaseModel):
    """
    Outcome of a gateway notification for one order.
    The unique order_id makes a redelivered notification a no-op.
    """

    __tablename__ = "payment_settlements"

    order_id = Column(String(64), unique=True, nullable=False, index=True)
    # success | failed | amount_mismatch | unknown_order
    status = Column(String(32), nullable=False)
    gateway_status = Column(String(32), nullable=True)
    amount = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(8), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    payment_id = Column(String(64), nullable=True)
    payload = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<PaymentSettlement(order_id={self.order_id}, status={self.status})>"
