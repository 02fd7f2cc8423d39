from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.auth.schemas.auth import OAuthTokenRequest
from app.features.auth.services.oauth_service import OAuthService
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_oauth_service(db: AsyncSession = Depends(get_db)) -> OAuthService:
    return OAuthService(db)


@router.post(
    "/google",
    response_model=dict,
    summary="Authenticate with Google",
    description="Sign in or register with a Google OAuth access token",
)
async def google_auth(request: OAuthTokenRequest, oauth_service: OAuthService = Depends(get_oauth_service)):
    """
    - **accessToken**: access token obtained by the client from Google

    401 when Google rejects the token, 408 on timeout, 502 when Google is unavailable.
    """
    auth_response = await oauth_service.authenticate_with_google(request.access_token)
    return api_response(data=auth_response, message="Logged in with Google")


@router.post(
    "/facebook",
    response_model=dict,
    summary="Authenticate with Facebook",
)
async def facebook_auth(request: OAuthTokenRequest, oauth_service: OAuthService = Depends(get_oauth_service)):
    auth_response = await oauth_service.authenticate_with_facebook(request.access_token)
    return api_response(data=auth_response, message="Logged in with Facebook")
