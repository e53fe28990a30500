import json
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path.home() / ".podcastparty" / "session.json"
SESSION_FILE_MODE = 0o600


class TokenStore:
    """Persists the token pair and signed-in user as a JSON file.

    Survives process restarts; ``clear()`` wipes it on logout.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or os.environ.get("PODCASTPARTY_SESSION_FILE") or DEFAULT_STORE_PATH)

    def load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        # Owner-only from creation; tokens are bearer credentials
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SESSION_FILE_MODE)
        # O_CREAT's mode does not apply to a leftover .tmp file; tighten before writing
        try:
            os.chmod(tmp_path, SESSION_FILE_MODE)
        except OSError:
            logger.debug(f"Could not restrict permissions on {tmp_path}")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    def store_tokens(self, access_token: str, refresh_token: str) -> None:
        data = self.load()
        data.update({"accessToken": access_token, "refreshToken": refresh_token})
        self._save(data)

    def store_user(self, user: dict) -> None:
        data = self.load()
        data["user"] = user
        self._save(data)

    @property
    def access_token(self) -> Optional[str]:
        return self.load().get("accessToken")

    @property
    def refresh_token(self) -> Optional[str]:
        return self.load().get("refreshToken")

    @property
    def user(self) -> Optional[dict]:
        return self.load().get("user")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
