import logging
from typing import Optional

from client.api import ApiError, AuthApi
from client.storage import TokenStore

logger = logging.getLogger(__name__)


class NotAuthenticated(Exception):
    pass


class Session:
    """The signed-in state kept in a ``TokenStore``."""

    def __init__(self, api: AuthApi, store: TokenStore):
        self.api = api
        self.store = store

    @property
    def is_authenticated(self) -> bool:
        return bool(self.store.access_token and self.store.refresh_token)

    def refresh(self) -> dict:
        """Rotate the stored pair. A rejected refresh token signs the user out locally."""
        refresh_token = self.store.refresh_token
        if not refresh_token:
            raise NotAuthenticated("No refresh token stored")
        try:
            data = self.api.refresh(refresh_token)
        except ApiError as e:
            if e.status_code in (401, 403):
                self.store.clear()
            raise
        self.store.store_tokens(data["accessToken"], data["refreshToken"])
        return data

    def logout(self) -> Optional[dict]:
        """Revoke the refresh token server-side; local tokens are cleared regardless."""
        refresh_token = self.store.refresh_token
        try:
            if refresh_token:
                return self.api.logout(refresh_token)
            return None
        finally:
            self.store.clear()

    def me(self) -> dict:
        access_token = self.store.access_token
        if not access_token:
            raise NotAuthenticated("No access token stored")
        try:
            return self.api.me(access_token)
        except ApiError as e:
            if e.status_code != 401:
                raise
            logger.info("Access token rejected, refreshing")
        self.refresh()
        return self.api.me(self.store.access_token)
