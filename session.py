from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from config import YamlConfig
from schemas import User

if TYPE_CHECKING:
    from client import FitnessClient

LOGGER = logging.getLogger(__name__)


class AuthSession:
    """The signed-in user, persisted in the client config file.

    The stored user is loaded when the session is created and cleared on
    ``logout``. The token is kept under its own ``token`` key so it can be
    moved to the keyring with the other sensitive settings.
    """

    def __init__(self, config: YamlConfig) -> None:
        self.config = config
        self._user: Optional[User] = None
        self.load()

    def load(self) -> None:
        data = self.config.load()
        stored = data.get("user")
        token = data.get("token")
        if not stored or not isinstance(token, str):
            self._user = None
            return
        try:
            self._user = User.model_validate({**stored, "token": token})
        except ValidationError:
            LOGGER.error("Discarding malformed stored user")
            self._clear()

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def token(self) -> Optional[str]:
        return self._user.token if self._user else None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _store(self, user: User) -> User:
        if not user.token:
            raise ValueError("Server did not return an auth token")
        profile = user.model_dump(mode="json", by_alias=True, exclude_none=True)
        profile.pop("token", None)
        self.config.update(user=profile, token=user.token)
        self._user = user
        LOGGER.debug("Stored session for user %s", user.id)
        return user

    def _clear(self) -> None:
        self.config.update(user=None, token=None)
        self._user = None

    def login(self, client: FitnessClient, email: str, password: str) -> User:
        if not email or not email.strip():
            raise ValueError("Email is required")
        if not password:
            raise ValueError("Password is required")
        return self._store(client.login(email.strip(), password))

    def register(
        self,
        client: FitnessClient,
        name: str,
        email: str,
        password: str,
        confirm_password: Optional[str] = None,
    ) -> User:
        if not name or not name.strip():
            raise ValueError("Name is required")
        if not email or not email.strip():
            raise ValueError("Email is required")
        if confirm_password is not None and password != confirm_password:
            raise ValueError("Passwords do not match")
        if len(password or "") < 6:
            raise ValueError("Password must be at least 6 characters")
        return self._store(client.register(name.strip(), email.strip(), password))

    def complete_oauth(self, client: FitnessClient, token: str, user_id: str) -> User:
        """Finish an OAuth redirect that already issued ``token`` for ``user_id``."""
        if not token or not user_id:
            raise ValueError("Missing authentication data")
        self._user = User(id=user_id, name="", token=token)
        try:
            user = client.current_user()
        except Exception:
            self._user = None
            raise
        if user.id != str(user_id):
            self._user = None
            raise ValueError("Authenticated user does not match")
        return self._store(user.model_copy(update={"token": token}))

    def logout(self) -> None:
        LOGGER.info("Logging out")
        self._clear()

    def force_logout(self) -> None:
        """Drop the session after the server rejected the token."""
        if self._user is not None:
            LOGGER.warning("Session expired for user %s", self._user.id)
        self._clear()


class ThemeSettings:
    """Current UI theme, persisted in the client config file."""

    THEMES = ("light", "dark", "oled")
    DEFAULT = "light"

    def __init__(self, config: YamlConfig) -> None:
        self.config = config
        theme = config.load().get("theme")
        self._theme = theme if theme in self.THEMES else self.DEFAULT

    @property
    def theme(self) -> str:
        return self._theme

    def set_theme(self, theme: str) -> str:
        if theme not in self.THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.config.update(theme=theme)
        self._theme = theme
        return theme
