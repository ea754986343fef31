"""
Session Store for the API client.
Persists the access token and actor kind to a local JSON file so a session
survives process restarts, the way the web client keeps them in localStorage.
"""

import json
from pathlib import Path

from pydantic import ValidationError

from rental_hub.config import settings
from rental_hub.infrastructure.observability.logging import get_logger
from rental_hub.models.domain.session_domain import Session, UserType

logger = get_logger(__name__)


class SessionStoreError(Exception):
    """Custom exception for session persistence errors."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class SessionStore:
    """
    File-backed holder of the current Session.

    Every read goes to disk so several client instances (or processes)
    sharing a file see each other's token rotations.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or settings.SESSION_FILE)

    def load(self) -> Session:
        """
        Read the persisted session.

        Returns:
            Session: stored session, or an empty one if none was saved

        Raises:
            SessionStoreError: If the file exists but cannot be read or parsed
        """
        if not self.path.exists():
            return Session()

        try:
            raw = self.path.read_text(encoding="utf-8")
            if not raw.strip():
                return Session()
            return Session.model_validate(json.loads(raw))
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to read session file", path=str(self.path), error=str(e))
            raise SessionStoreError(f"Unreadable session file: {e}", path=str(self.path)) from e

    def save(self, session: Session) -> None:
        """Write the session atomically (temp file + replace)."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(
                session.model_dump_json(by_alias=True, exclude_none=True), encoding="utf-8"
            )
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error("Failed to write session file", path=str(self.path), error=str(e))
            raise SessionStoreError(f"Cannot persist session: {e}", path=str(self.path)) from e

    def start(self, access_token: str, user_type: UserType | str) -> Session:
        """Create a session after a successful login."""
        session = Session(access_token=access_token, user_type=UserType(user_type))
        self.save(session)
        logger.info("Session started", user_type=session.user_type.value)
        return session

    def get_access_token(self) -> str | None:
        return self.load().access_token

    def get_user_type(self) -> UserType | None:
        return self.load().user_type

    def set_access_token(self, access_token: str) -> None:
        """Replace the access token after a refresh, keeping the actor kind."""
        session = self.load()
        self.save(session.model_copy(update={"access_token": access_token}))
        logger.debug("Access token rotated")

    def clear(self) -> None:
        """Destroy the session (logout)."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise SessionStoreError(f"Cannot clear session: {e}", path=str(self.path)) from e
        logger.info("Session cleared")
