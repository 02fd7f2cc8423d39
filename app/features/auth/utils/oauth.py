from typing import Any, Dict, Optional

import httpx

from app.platform.config import settings
from app.platform.exceptions import (
    UnauthorizedError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from app.platform.logger import get_logger

logger = get_logger("oauth")


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(settings.OUTBOUND_HTTP_TIMEOUT_SECONDS)


class GoogleOAuthVerifier:
    """Resolves a Google access token into the profile of its owner."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def verify_token(self, access_token: str) -> Dict[str, Any]:
        """
        Call the userinfo endpoint with the access token.

        Raises:
            UnauthorizedError: Google rejected the token (401)
            ValidationError: malformed token (400) or profile without id/email
            UpstreamTimeoutError: no answer within the outbound timeout
            UpstreamError: any other failure talking to Google
        """
        try:
            async with httpx.AsyncClient(timeout=_timeout(), transport=self.transport) as client:
                response = await client.get(
                    settings.GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError("Google API timeout") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Google userinfo returned {e.response.status_code}: {e.response.text}")
            if e.response.status_code == 401:
                raise UnauthorizedError("Invalid Google access token") from e
            if e.response.status_code == 400:
                raise ValidationError("Invalid Google token format") from e
            raise UpstreamError("Google API unavailable") from e
        except httpx.HTTPError as e:
            logger.warning(f"Google userinfo request failed: {e!r}")
            raise UpstreamError("Google API unavailable") from e

        profile = response.json()
        if not profile.get("sub") or not profile.get("email"):
            raise ValidationError("Invalid Google user data")

        return {
            "provider_user_id": str(profile["sub"]),
            "email": profile["email"],
            "name": profile.get("name"),
            "picture": profile.get("picture"),
        }


class FacebookOAuthVerifier:
    """Checks a Facebook access token against our app and loads the user profile."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def verify_token(self, access_token: str) -> Dict[str, Any]:
        graph = settings.FACEBOOK_GRAPH_URL.rstrip("/")
        app_token = f"{settings.FACEBOOK_APP_ID}|{settings.FACEBOOK_APP_SECRET}"

        try:
            async with httpx.AsyncClient(timeout=_timeout(), transport=self.transport) as client:
                debug = await client.get(
                    f"{graph}/debug_token",
                    params={"input_token": access_token, "access_token": app_token},
                )
                debug.raise_for_status()
                token_data = debug.json().get("data") or {}

                if not token_data.get("is_valid"):
                    reason = (token_data.get("error") or {}).get("message") or "Token is not valid"
                    raise UnauthorizedError(f"Invalid Facebook access token: {reason}")

                if str(token_data.get("app_id")) != settings.FACEBOOK_APP_ID:
                    raise UnauthorizedError("Token was issued for a different Facebook app")

                user_response = await client.get(
                    f"{graph}/{token_data.get('user_id')}",
                    params={
                        "fields": "id,name,email,first_name,last_name,picture.type(large)",
                        "access_token": access_token,
                    },
                )
                user_response.raise_for_status()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError("Facebook API timeout. Please try again.") from e
        except httpx.HTTPStatusError as e:
            raise self._map_status_error(e.response) from e
        except httpx.HTTPError as e:
            logger.warning(f"Facebook request failed: {e!r}")
            raise UpstreamError("Unable to connect to Facebook. Please try again later.") from e

        profile = user_response.json()
        facebook_id = str(profile["id"])
        name = profile.get("name") or f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()

        return {
            "provider_user_id": facebook_id,
            # accounts without a shared email still need a unique address
            "email": profile.get("email") or f"fb_{facebook_id}@placeholder.facebook",
            "name": name or f"Facebook User {facebook_id}",
            "picture": ((profile.get("picture") or {}).get("data") or {}).get("url"),
        }

    @staticmethod
    def _map_status_error(response: httpx.Response) -> Exception:
        logger.warning(f"Facebook API returned {response.status_code}: {response.text}")
        if response.status_code == 400:
            try:
                error = response.json().get("error") or {}
            except ValueError:
                error = {}
            if error.get("code") == 190:
                return UnauthorizedError("Expired or invalid Facebook access token. Please try logging in again.")
            return ValidationError(f"Facebook API error: {error.get('message') or 'Invalid request'}")
        if response.status_code == 401:
            return UnauthorizedError("Facebook authentication failed. The access token is invalid or has expired.")
        return UpstreamError("Unable to connect to Facebook. Please try again later.")
