from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


class Credentials(BaseModel):
    # Both optional so missing fields reach the service as a 400, not a 422
    email: Optional[str] = Field(default=None, examples=["user@example.com"])
    password: Optional[str] = Field(default=None, examples=["password123!"])


class RegisterRequest(Credentials):
    pass


class LoginRequest(Credentials):
    pass


class RefreshTokenRequest(BaseModel):
    # Non-string values are rejected by the service as invalid tokens
    refreshToken: Optional[Any] = Field(default=None, examples=["Refresh token"])


class LogoutRequest(RefreshTokenRequest):
    pass


class TokenPair(BaseModel):
    accessToken: str
    refreshToken: str


class AuthResponse(TokenPair):
    message: str


class MessageResponse(BaseModel):
    message: str


class User(BaseModel):
    id: str
    email: str

    model_config = ConfigDict(extra="ignore")


class UserInDB(User):
    hashed_password: str
    refresh_token: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "UserInDB":
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            hashed_password=doc.get("hashed_password", ""),
            refresh_token=doc.get("refresh_token"),
        )
