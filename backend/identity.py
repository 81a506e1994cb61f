"""Who is signed in on this client.

The provider owns login, logout and restoring a saved session. Pages receive
the resulting :class:`Identity` explicitly; nothing reads it from a global.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import config
from api_client import ApiClient, ApiError, AuthError
from models import SessionRead

logger = logging.getLogger("name_picker.identity")


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str
    display_name: str
    token: str

    @classmethod
    def from_session(cls, session: SessionRead) -> "Identity":
        return cls(
            user_id=session.user.id,
            username=session.user.username,
            display_name=session.user.display_name,
            token=session.token,
        )


class IdentityProvider:
    def __init__(self, api: ApiClient, store_path: Path = None) -> None:
        self.api = api
        self.store_path = Path(store_path) if store_path else config.session_file()
        self.current: Optional[Identity] = None
        # True until restore() has finished; protected pages wait on it
        self.is_loading = True
        self._listeners: List[Callable[[Optional[Identity]], None]] = []

    @property
    def is_authenticated(self) -> bool:
        return self.current is not None

    def subscribe(self, callback: Callable[[Optional[Identity]], None]) -> Callable[[], None]:
        """Call *callback* on every login/logout. Returns an unsubscribe function."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback)

    def _set(self, identity: Optional[Identity]) -> None:
        self.current = identity
        for callback in list(self._listeners):
            callback(identity)

    def _read_token(self) -> Optional[str]:
        if not self.store_path.exists():
            return None
        try:
            with open(self.store_path, "r") as fh:
                return json.load(fh).get("token")
        except (ValueError, OSError, AttributeError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.store_path, exc)
            return None

    def _save_token(self, token: str) -> None:
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.store_path, "w") as fh:
            json.dump({"token": token}, fh)

    def _forget_token(self) -> None:
        try:
            self.store_path.unlink()
        except FileNotFoundError:
            pass

    async def restore(self) -> Optional[Identity]:
        """Resume a saved session if the service still knows its token."""
        try:
            token = self._read_token()
            if token:
                self.api.token = token
                try:
                    session = await self.api.get_session()
                except AuthError:
                    logger.info("Saved session is no longer valid")
                    self.api.token = None
                    self._forget_token()
                except ApiError as exc:
                    # Keep the saved token so a later run can try again
                    logger.warning("Could not check saved session: %s", exc)
                    self.api.token = None
                else:
                    self._set(Identity.from_session(session))
        finally:
            self.is_loading = False
        return self.current

    async def login(self, email: str, password: str) -> Identity:
        """Sign in. Raises AuthError on bad credentials."""
        session = await self.api.sign_in(email, password)
        self._save_token(session.token)
        identity = Identity.from_session(session)
        self._set(identity)
        logger.info("Signed in as %s", identity.username)
        return identity

    async def logout(self) -> None:
        try:
            await self.api.sign_out()
        except ApiError as exc:
            # The local session ends regardless
            logger.warning("Sign-out request failed: %s", exc)
        finally:
            self._forget_token()
            self._set(None)
