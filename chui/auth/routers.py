import os
import logging

from fastapi.responses import JSONResponse
from fastapi import APIRouter, status, HTTPException, Request, Response, Depends

from supabase import AsyncClient, AuthApiError

from chui.chat.facade import Messenger
from chui.core.config import settings
from chui.core.dependencies import get_messenger, get_supabase
from chui.core.errors import ChatError
from chui.profiles.usernames import normalize_username
from chui.utils.env_helper import env_bool, env_none_or_str
from .schemas import (
    UserRegistrationModel,
    UserRegistrationResponseModel,
    UserLoginModel,
    UserLoginResponseModel,
    AccessTokenResponseModel,
)


logger = logging.getLogger(__name__)
router = APIRouter()

REFRESH_COOKIE = "refresh_token"
REFRESH_COOKIE_PATH = "/auth/access"


def username_to_email(username: str) -> str:
    return f"{username}@{settings.username_email_domain}"


def set_refresh_cookie(response: Response, refresh_token: str):
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=env_bool("HTTPONLY", default=True),
        secure=env_bool("SECURE", default=False),
        samesite=os.getenv("SAMESITE", "Lax"),
        domain=env_none_or_str("COOKIE_DOMAIN", None),
        max_age=60 * 60 * 24 * 7,  # 7 days
        path=REFRESH_COOKIE_PATH,
    )


@router.post("/register", response_model=UserRegistrationResponseModel, status_code=201)
async def register_user(
    data: UserRegistrationModel,
    response: Response,
    supabase: AsyncClient = Depends(get_supabase),
    messenger: Messenger = Depends(get_messenger),
):
    """
    Register a new user.

    Creates a Supabase Auth user and links it to the profile for the
    username. When no usable email is given, a mailbox under the username
    domain is used so users can sign in by username alone.

    **Input Fields**
    - **username**: 3-20 letters/numbers, case insensitive.
    - **password**: Minimum 8 characters.
    - **email**: Optional.

    **Errors**
    - 409: Username or email already registered
    - 422: Invalid username
    - 500: Storage or internal server error
    """
    try:
        username = messenger.registry.parse(data.username)

        existing = await messenger.registry.lookup(username)
        if existing and existing.auth_user_id:
            raise HTTPException(status_code=409, detail="Username already taken.")

        email = data.email or username_to_email(username)

        try:
            res = await supabase.auth.sign_up(
                {
                    "email": email,
                    "password": data.password.get_secret_value(),
                    "options": {"data": {"username": username}},
                }
            )
        except AuthApiError as error:
            logger.error(f"supabase_error={error}")
            raise HTTPException(status_code=409, detail=str(error))

        if not res.user:
            raise HTTPException(status_code=400, detail="Failed to create user")

        user_id = await messenger.registry.resolve_or_create(
            username, auth_user_id=str(res.user.id), email=email
        )

        access_token = None
        if res.session:
            access_token = res.session.access_token
            set_refresh_cookie(response, res.session.refresh_token)

        logger.info(f"user_register_success username={username} user_id={user_id}")

        return {
            "user_id": user_id,
            "email": email,
            "username": username,
            "access_token": access_token,
        }

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except HTTPException:
        raise

    except Exception:
        logger.exception("user_register_failed")
        raise HTTPException(
            status_code=500, detail="An internal server error occurred during registration."
        )


@router.post("/login", response_model=UserLoginResponseModel, status_code=200)
async def login_user(
    user_data: UserLoginModel,
    response: Response,
    supabase: AsyncClient = Depends(get_supabase),
    messenger: Messenger = Depends(get_messenger),
):
    """
    Authenticate with an email or a username, and a password.

    On success the profile is re-linked to the auth user, a new access token
    is returned, and the refresh token is set in an HttpOnly cookie.

    **Errors**
    - 401: Invalid credentials
    - 422: Invalid username
    - 500: Supabase or internal server error
    """
    try:
        login = user_data.login.strip().lower()
        if not login:
            raise HTTPException(status_code=422, detail="Email required")
        email = login if "@" in login else username_to_email(messenger.registry.parse(login))

        res = await supabase.auth.sign_in_with_password(
            {
                "email": email,
                "password": user_data.password.get_secret_value(),
            }
        )

        if not res.session or not res.user:
            raise HTTPException(
                status_code=500,
                detail="Supabase authentication returned an unexpected response.",
            )

        metadata = res.user.user_metadata or {}
        username = normalize_username(metadata.get("username") or login.split("@")[0])
        user_id = await messenger.registry.resolve_or_create(
            username, auth_user_id=str(res.user.id)
        )

        set_refresh_cookie(response, res.session.refresh_token)
        logger.info(f"user_login_success username={username}")

        return {
            "access_token": res.session.access_token,
            "expires_in": res.session.expires_in,
            "user_id": user_id,
            "username": username,
        }

    except AuthApiError as error:
        raise HTTPException(status_code=401, detail=error.message)

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except HTTPException:
        raise

    except Exception:
        logger.exception("user_login_failed")
        raise HTTPException(
            status_code=500, detail="An internal server error occurred during login."
        )


@router.get("/access", response_model=AccessTokenResponseModel, status_code=200)
async def get_new_access(
    request: Request,
    response: Response,
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Issue a new access token using the refresh token stored in an HttpOnly cookie.

    **Errors**
    - 401: Missing, expired, revoked, or invalid refresh token
    """
    refresh_token = request.cookies.get(REFRESH_COOKIE)

    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No refresh token provided.",
        )

    try:
        session = await supabase.auth.refresh_session(refresh_token)
        set_refresh_cookie(response, session.session.refresh_token)
        return {"access_token": session.session.access_token}

    except Exception as e:
        logger.info(f"refresh_failed error={e}")
        response.delete_cookie(
            key=REFRESH_COOKIE,
            domain=env_none_or_str("COOKIE_DOMAIN", None),
            path=REFRESH_COOKIE_PATH,
        )

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token invalid or expired. Please log in again.",
        )


@router.post("/logout")
async def logout(supabase: AsyncClient = Depends(get_supabase)):
    """
    Logs out the user by clearing the refresh_token cookie. Supabase cannot
    invalidate JWTs early, so this is the whole of logout.
    """

    try:
        await supabase.auth.sign_out()
    except AuthApiError as e:
        logger.warning(f"supabase_sign_out_failed error={e}")

    response = JSONResponse({"logged_out": True})

    response.delete_cookie(
        key=REFRESH_COOKIE,
        path=REFRESH_COOKIE_PATH,  # must match set_cookie()
        domain=env_none_or_str("COOKIE_DOMAIN", None),
    )

    return response
