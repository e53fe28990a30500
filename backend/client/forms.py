"""
Login and registration form state.

Each form walks ``idle -> submitting -> success | error``. Local validation
failures keep the form idle and never touch the network. A form that is
already submitting refuses a second submit.
"""

import enum
import logging
from typing import Callable, Dict, Optional

from client.api import ApiError, AuthApi, ConnectionFailed
from client.storage import TokenStore
from client.validation import (
    FieldResult,
    make_repeat_password_validator,
    validate_email,
    validate_form,
    validate_login_password,
    validate_password,
)

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = "Connection error. Check your internet connection."
GENERIC_LOGIN_ERROR = "Authentication error"
GENERIC_REGISTER_ERROR = "Registration failed"
INCOMPLETE_RESPONSE_MESSAGE = "Incomplete server response"

AUTHENTICATED_VIEW = "/"


class FormState(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


class AuthForm:
    endpoint_name: str = ""
    generic_error: str = "Request failed"

    def __init__(self, api: AuthApi, store: TokenStore):
        self.api = api
        self.store = store
        self.values: Dict[str, str] = {}
        self.errors: Dict[str, str] = {}
        self.state = FormState.IDLE
        self.redirect_to: Optional[str] = None

    @property
    def is_loading(self) -> bool:
        return self.state is FormState.SUBMITTING

    def validators(self) -> Dict[str, Callable[[Optional[str]], FieldResult]]:
        raise NotImplementedError

    def set_field(self, name: str, value: str) -> None:
        """Store a field and re-validate it, like an input's change handler."""
        result = self.validators()[name](value)
        self.values[name] = result.value
        if result.is_valid:
            self.errors.pop(name, None)
        else:
            self.errors[name] = result.message

    def clear_errors(self) -> None:
        self.errors = {}

    def _call(self, data: Dict[str, str]) -> dict:
        raise NotImplementedError

    def _map_status(self, error: ApiError) -> Dict[str, str]:
        if error.status_code == 409:
            return {"email": "This email is already registered"}
        return {"general": error.message or self.generic_error}

    def _fail(self, errors: Dict[str, str]) -> bool:
        self.errors = errors
        self.state = FormState.ERROR
        return False

    def submit(self) -> bool:
        """Validate, post and persist tokens. True on success."""
        if self.is_loading:
            logger.debug("Submit ignored, request already in flight")
            return False

        self.clear_errors()
        sanitized, errors = validate_form(self.values, self.validators())
        if errors:
            self.errors = errors
            return False

        self.state = FormState.SUBMITTING
        try:
            data = self._call(sanitized)
            if not isinstance(data, dict) or not data.get("accessToken") or not data.get("refreshToken"):
                return self._fail({"general": INCOMPLETE_RESPONSE_MESSAGE})
            self.store.store_tokens(data["accessToken"], data["refreshToken"])
            self.store.store_user({"email": sanitized["email"]})
        except ConnectionFailed:
            return self._fail({"general": CONNECTION_ERROR_MESSAGE})
        except ApiError as e:
            logger.info(f"{self.endpoint_name} rejected with {e.status_code}")
            return self._fail(self._map_status(e))
        except Exception as e:
            # Never leave the form stuck in SUBMITTING
            logger.error(f"{self.endpoint_name} failed: {e}")
            return self._fail({"general": self.generic_error})

        self.state = FormState.SUCCESS
        self.redirect_to = AUTHENTICATED_VIEW
        return True


class LoginForm(AuthForm):
    endpoint_name = "login"
    generic_error = GENERIC_LOGIN_ERROR

    def validators(self):
        return {"email": validate_email, "password": validate_login_password}

    def _call(self, data):
        return self.api.login(data["email"], data["password"])

    def _map_status(self, error: ApiError):
        if error.status_code == 404:
            return {"email": "No account found for this email"}
        if error.status_code == 400:
            return {"password": "Invalid email or password"}
        return super()._map_status(error)


class RegisterForm(AuthForm):
    endpoint_name = "register"
    generic_error = GENERIC_REGISTER_ERROR

    def validators(self):
        return {
            "email": validate_email,
            "password": validate_password,
            "repeatPassword": make_repeat_password_validator(self.values.get("password", "")),
        }

    def set_field(self, name: str, value: str) -> None:
        super().set_field(name, value)
        # Changing the password re-checks an already typed confirmation
        if name == "password" and self.values.get("repeatPassword"):
            super().set_field("repeatPassword", self.values["repeatPassword"])

    def _call(self, data):
        return self.api.register(data["email"], data["password"])

    def _map_status(self, error: ApiError):
        if error.status_code == 400:
            return {"general": error.message or GENERIC_REGISTER_ERROR}
        return super()._map_status(error)
