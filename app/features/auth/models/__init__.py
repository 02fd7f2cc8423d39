from app.features.auth.models.oauth import OAuthAccount
from app.features.auth.models.user import User

__all__ = ["User", "OAuthAccount"]
