from typing import Any, Dict, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status

from ....application.services.account_service import AccountService
from ....core.dependencies import get_account_service, get_session_issuer
from ....domain.models import PublicUser
from ....domain.results import ErrorKind, Outcome
from ....services.sessions import SessionIssuer
from ...api.schemas.auth import (
    EmailPayload,
    LoginPayload,
    ResetPasswordPayload,
    SignupPayload,
    VerifyEmailPayload,
)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATE_ACCOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ACCOUNT_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.DEPENDENCY_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _raise_for(outcome: Outcome) -> None:
    if outcome.error is None:
        return
    raise HTTPException(status_code=_STATUS_BY_KIND[outcome.error.kind], detail=outcome.error.message)


def current_user_id(
    token: Optional[str] = Cookie(default=None),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> int:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - no token provided")
    user_id = sessions.validate(token)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized - invalid token")
    return user_id


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupPayload,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> Dict[str, Any]:
    outcome = await accounts.signup(payload.email, payload.password, payload.name)
    _raise_for(outcome)
    sessions.attach(response, outcome.value.credential)
    return {
        "success": True,
        "message": "User created successfully",
        "user": _serialize_user(outcome.value.user),
    }


@router.post("/login")
async def login(
    payload: LoginPayload,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> Dict[str, Any]:
    outcome = await accounts.login(payload.email, payload.password)
    _raise_for(outcome)
    sessions.attach(response, outcome.value.credential)
    return {
        "success": True,
        "message": "Logged in successfully",
        "user": _serialize_user(outcome.value.user),
    }


@router.post("/logout")
async def logout(
    response: Response,
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    _raise_for(accounts.logout(response))
    return {"success": True, "message": "Logged out successfully"}


@router.post("/verify-email")
async def verify_email(
    payload: VerifyEmailPayload,
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    outcome = await accounts.verify_email(payload.code)
    _raise_for(outcome)
    return {
        "success": True,
        "message": "Email verified successfully",
        "user": _serialize_user(outcome.value),
    }


@router.post("/resend-verification")
async def resend_verification(
    payload: EmailPayload,
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    outcome = await accounts.resend_verification(payload.email)
    _raise_for(outcome)
    return {"success": True, "message": "If the email exists, a verification code has been sent."}


@router.post("/forgot-password")
async def forgot_password(
    payload: EmailPayload,
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    outcome = await accounts.forgot_password(payload.email)
    _raise_for(outcome)
    return {"success": True, "message": "Password reset link sent to your email"}


@router.post("/reset-password/{token}")
async def reset_password(
    token: str,
    payload: ResetPasswordPayload,
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    outcome = await accounts.reset_password(token, payload.password)
    _raise_for(outcome)
    return {"success": True, "message": "Password reset successful"}


@router.get("/check-auth")
async def check_auth(
    user_id: int = Depends(current_user_id),
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    outcome = accounts.check_auth(user_id)
    _raise_for(outcome)
    return {"success": True, "user": _serialize_user(outcome.value)}


def _serialize_user(user: PublicUser) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "is_verified": user.is_verified,
        "last_login": user.last_login.isoformat() if user.last_login else None,
        "created_at": user.created_at.replace(microsecond=0).isoformat(),
        "updated_at": user.updated_at.replace(microsecond=0).isoformat(),
    }
