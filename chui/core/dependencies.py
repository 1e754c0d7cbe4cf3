import logging
import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from chui.chat.facade import Messenger
from chui.core.config import settings
from chui.core.session import Session

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"verify_aud": False},
        leeway=60,
    )


def verify_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Session:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not settings.jwt_secret:
        logger.error("jwt_secret_missing set SUPABASE_JWT_SECRET")
        raise HTTPException(status_code=503, detail="Authentication service unavailable.")

    token = credentials.credentials
    try:
        payload = decode_access_token(token)

    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")

    except jwt.InvalidTokenError as e:
        logger.warning(f"jwt_verification_failed error={e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token")

    return Session(auth_user_id=subject, access_token=token, email=payload.get("email"))


def optional_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Session | None:
    if credentials is None:
        return None
    return verify_token(credentials)


def get_messenger(request: Request) -> Messenger:
    return request.app.state.messenger


def get_supabase(request: Request):
    supabase = getattr(request.app.state, "supabase", None)
    if supabase is None:
        raise HTTPException(status_code=503, detail="Authentication service unavailable.")
    return supabase
