from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.models.oauth import OAuthAccount
from app.features.auth.models.user import User
from app.features.auth.schemas.auth import AuthResponse
from app.features.auth.services.auth_service import build_auth_response, normalize_email
from app.features.auth.utils.oauth import FacebookOAuthVerifier, GoogleOAuthVerifier
from app.platform.exceptions import ConflictError, ValidationError
from app.platform.logger import get_logger

logger = get_logger("oauth_service")


class OAuthService:
    def __init__(
        self,
        db: AsyncSession,
        google: Optional[GoogleOAuthVerifier] = None,
        facebook: Optional[FacebookOAuthVerifier] = None,
    ):
        self.db = db
        self.google = google or GoogleOAuthVerifier()
        self.facebook = facebook or FacebookOAuthVerifier()

    async def authenticate_with_google(self, access_token: Optional[str]) -> AuthResponse:
        if not access_token:
            raise ValidationError("Access token is required")
        profile = await self.google.verify_token(access_token)
        return await self._sign_in("google", profile)

    async def authenticate_with_facebook(self, access_token: Optional[str]) -> AuthResponse:
        if not access_token:
            raise ValidationError("Access token is required")
        profile = await self.facebook.verify_token(access_token)
        return await self._sign_in("facebook", profile)

    async def _sign_in(self, provider: str, profile: Dict[str, Any]) -> AuthResponse:
        """
        Find the account linked to the provider identity, else link the
        account that owns the same email, else create a new account.
        """
        provider_user_id = profile["provider_user_id"]
        email = normalize_email(profile["email"])
        now = datetime.now(timezone.utc)

        oauth_result = await self.db.execute(
            select(OAuthAccount).where(
                OAuthAccount.provider == provider,
                OAuthAccount.provider_user_id == provider_user_id,
            )
        )
        oauth_account = oauth_result.scalar_one_or_none()

        if oauth_account:
            user = await self.db.get(User, oauth_account.user_id)
            oauth_account.provider_data = profile
            oauth_account.provider_email = email
        else:
            user_result = await self.db.execute(select(User).where(User.email == email))
            user = user_result.scalar_one_or_none()

            if user is None:
                user = User(
                    email=email,
                    name=profile.get("name") or email.split("@")[0],
                    password_hash=None,
                    avatar_url=profile.get("picture"),
                    auth_provider=provider,
                )
                self.db.add(user)
                await self.db.flush()
                logger.info(f"Created {provider} account {user.id}")
            else:
                user.auth_provider = provider
                if not user.avatar_url:
                    user.avatar_url = profile.get("picture")

            self.db.add(
                OAuthAccount(
                    user_id=user.id,
                    provider=provider,
                    provider_user_id=provider_user_id,
                    provider_email=email,
                    provider_data=profile,
                )
            )

        user.last_login = now

        try:
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("Failed to link account, please retry") from e

        return build_auth_response(user)
