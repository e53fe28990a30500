from fastapi import APIRouter, Depends
from typing import Optional
from api.dependencies import get_auth_service, get_current_user
from schemas.user_schema import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPair,
    User,
)
from services.auth_service import AuthService
from utils.responses import no_store_json

router = APIRouter(prefix="/auth")

ERROR_RESPONSES = {
    400: {"model": MessageResponse, "description": "Invalid input or credentials"},
    401: {"model": MessageResponse, "description": "Refresh token required"},
    403: {"model": MessageResponse, "description": "Invalid refresh token"},
    404: {"model": MessageResponse, "description": "User not found"},
    500: {"model": MessageResponse, "description": "Internal server error"},
}


def _responses(*codes: int) -> dict:
    return {code: ERROR_RESPONSES[code] for code in codes}


@router.post("/register", response_model=AuthResponse, status_code=201, responses=_responses(400, 500),
             summary="Register a new user")
async def register(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Email is stored lowercased. Password needs 8+ characters, a digit and one of `!@#$%^&*`."""
    result = await auth.register(payload.email, payload.password)
    return no_store_json(result.model_dump(), status_code=201)


@router.post("/login", response_model=AuthResponse, responses=_responses(400, 404, 500),
             summary="Login user and obtain JWT tokens")
async def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    result = await auth.login(payload.email, payload.password)
    return no_store_json(result.model_dump())


@router.post("/refresh-token", response_model=TokenPair, responses=_responses(401, 403, 500),
             summary="Exchange a refresh token for a new token pair")
async def refresh_token(payload: Optional[RefreshTokenRequest] = None, auth: AuthService = Depends(get_auth_service)):
    result = await auth.refresh(payload.refreshToken if payload else None)
    return no_store_json(result.model_dump())


@router.post("/logout", response_model=MessageResponse, responses=_responses(401, 403, 500),
             summary="Logout user and invalidate refresh token")
async def logout(payload: Optional[LogoutRequest] = None, auth: AuthService = Depends(get_auth_service)):
    result = await auth.logout(payload.refreshToken if payload else None)
    return no_store_json(result.model_dump())


@router.get("/me", response_model=User, summary="Current user from the access token")
async def me(current_user: User = Depends(get_current_user)):
    return no_store_json(current_user.model_dump())
