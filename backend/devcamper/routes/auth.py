"""
DevCamper Backend — Auth Route Handlers
=========================================

What:  Registration, login/logout, the caller's own profile and password
       reset.
How:   Token-issuing endpoints return {success, token} and set the `token`
       cookie (httponly; secure in production). Logout clears the cookie;
       tokens themselves cannot be revoked.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.dependencies import TOKEN_COOKIE, Principal, get_current_principal
from devcamper.config import settings
from devcamper.database import get_db_session
from devcamper.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
)
from devcamper.schemas.common import ErrorResponse, dump, envelope
from devcamper.schemas.user import UserResponse
from devcamper.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def token_response(token: str, status_code: int = 200) -> JSONResponse:
    """{success, token} body plus the `token` cookie."""
    max_age = settings.jwt_cookie_expire_days * 24 * 60 * 60
    response = JSONResponse(
        status_code=status_code,
        content=TokenResponse(token=token).model_dump(),
    )
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.post(
    "/register",
    response_model=TokenResponse,
    responses={400: {"description": "Invalid input or email taken", "model": ErrorResponse}},
    summary="Register a user or publisher",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    _, token = await auth_service.register(db, payload)
    return token_response(token)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Email or password missing", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    _, token = await auth_service.login(db, payload.email, payload.password)
    return token_response(token)


@router.get(
    "/me",
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
    summary="Current user",
)
async def me(principal: Principal = Depends(get_current_principal)) -> dict:
    return envelope(dump(UserResponse, principal.user))


@router.get(
    "/logout",
    summary="Log out (clear the token cookie)",
    description="Tokens are stateless; logging out only removes the cookie from the client.",
)
async def logout(principal: Principal = Depends(get_current_principal)) -> JSONResponse:
    response = JSONResponse(content=envelope({}))
    response.delete_cookie(
        key=TOKEN_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    logger.info("User %s logged out", principal.id)
    return response


@router.post(
    "/forgotpassword",
    responses={
        404: {"description": "No user with that email", "model": ErrorResponse},
        502: {"description": "Email could not be sent", "model": ErrorResponse},
    },
    summary="Email a password reset token",
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    reset_url_base = (
        f"{str(request.base_url).rstrip('/')}{settings.api_prefix}/auth/resetpassword"
    )
    await auth_service.forgot_password(db, payload.email, reset_url_base)
    return envelope("Email sent")


@router.put(
    "/resetpassword/{reset_token}",
    response_model=TokenResponse,
    responses={400: {"description": "Invalid or expired token", "model": ErrorResponse}},
    summary="Set a new password with a reset token",
)
async def reset_password(
    reset_token: str,
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    _, token = await auth_service.reset_password(db, reset_token, payload.password)
    return token_response(token)


@router.put(
    "/updatedetails",
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
    summary="Update the current user's name and email",
)
async def update_details(
    payload: UpdateDetailsRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    user = await auth_service.update_details(db, principal.user, payload)
    return envelope(dump(UserResponse, user))


@router.put(
    "/updatepassword",
    response_model=TokenResponse,
    responses={401: {"description": "Current password is incorrect", "model": ErrorResponse}},
    summary="Change the current user's password",
)
async def update_password(
    payload: UpdatePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    _, token = await auth_service.update_password(
        db, principal.user, payload.current_password, payload.new_password
    )
    return token_response(token)
