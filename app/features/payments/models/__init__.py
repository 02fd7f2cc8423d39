from app.features.payments.models.settlement import PaymentSettlement

__all__ = ["PaymentSettlement"]
