from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import Settings, get_settings
from ..errors import AuthenticationError
from ..services.calcom_client import CalComClient
from ..services.elevenlabs_client import ElevenLabsClient
from ..services.security import Identity, decode_session_token

SESSION_COOKIE = "session"

# auto_error=False: a missing header is "no session", not an error
bearer = HTTPBearer(auto_error=False)


def resolve_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer),
    settings: Settings = Depends(get_settings),
) -> Optional[Identity]:
    """Bearer header first, then the session cookie. Never raises."""
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return decode_session_token(token, settings.auth_secret)


def require_identity(identity: Optional[Identity] = Depends(resolve_session)) -> Identity:
    if identity is None:
        raise AuthenticationError()
    return identity


@lru_cache
def get_calcom_client() -> CalComClient:
    settings = get_settings()
    return CalComClient(settings.calcom_api_key, base_url=settings.calcom_base_url)


@lru_cache
def get_elevenlabs_client() -> ElevenLabsClient:
    settings = get_settings()
    return ElevenLabsClient(
        settings.elevenlabs_api_key,
        base_url=settings.elevenlabs_base_url,
        model_id=settings.elevenlabs_model_id,
    )
