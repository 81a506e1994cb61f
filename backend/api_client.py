"""Async client for the Name Picker data service.

The view layer talks to the service only through :class:`ApiClient`. Every
method is a single remote call: nothing is cached and nothing is retried, so
errors surface to the caller as one of the :class:`ApiError` subclasses below.
"""
import logging
from typing import Callable, Iterable, List, Optional

import httpx

import config
from models import (
    Analytics, Gender, MatchRead, NameCreate, NameRead, ProfileRead,
    SessionRead, SwipeCreate, SwipeResult,
)

logger = logging.getLogger("name_picker.client")


class ApiError(Exception):
    """Base class for every failure the client reports."""

    def __init__(self, message: str, status_code: int = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class ValidationError(ApiError):
    """Input rejected, either before the request or by the service (422)."""


class TransportError(ApiError):
    """The service could not be reached."""


_ERRORS_BY_STATUS = {
    401: AuthError,
    403: AuthError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def _error_for(response: httpx.Response) -> ApiError:
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        detail = response.text
    if not isinstance(detail, str):
        detail = str(detail)
    error_class = _ERRORS_BY_STATUS.get(response.status_code, ApiError)
    return error_class(detail or f"HTTP {response.status_code}", status_code=response.status_code)


class ApiClient:
    """Maps application calls onto the service's HTTP routes.

    Args:
        base_url: Service URL. Defaults to ``config.api_url()``.
        api_key: Public key sent in the ``apikey`` header. Defaults to
                 ``config.api_key()``.
        token: Bearer token of a signed-in session, if any.
        transport: Optional ``httpx`` transport, e.g. ``httpx.ASGITransport``
                   to run against an in-process app.
    """

    def __init__(self, base_url: str = None, api_key: str = None, token: str = None,
                 transport: httpx.AsyncBaseTransport = None) -> None:
        self.base_url = base_url or config.api_url()
        self.api_key = api_key if api_key is not None else config.api_key()
        self.token = token
        # No client-side timeout: a hung call blocks its caller
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=None, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict:
        headers = {"apikey": self.api_key}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs):
        try:
            response = await self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise TransportError(str(exc)) from exc
        if response.status_code >= 400:
            error = _error_for(response)
            logger.debug("%s %s -> %s %s", method, path, response.status_code, error)
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Swipe flow
    # ------------------------------------------------------------------

    async def get_next_name(self, user_id: int) -> Optional[NameRead]:
        """Return one name *user_id* has not swiped yet, or None."""
        row = await self._request("GET", f"/names/next/{user_id}")
        return NameRead.model_validate(row) if row else None

    async def swipe_name(self, action: SwipeCreate) -> SwipeResult:
        """Record a swipe. Raises NotFoundError / ConflictError from the service."""
        row = await self._request("POST", "/swipe", json=action.model_dump(mode="json"))
        return SwipeResult.model_validate(row)

    async def get_matches(self, user_id: int) -> List[MatchRead]:
        rows = await self._request("GET", f"/matches/{user_id}")
        return [MatchRead.model_validate(row) for row in rows or []]

    async def get_user_profile(self, user_id: int) -> ProfileRead:
        return ProfileRead.model_validate(await self._request("GET", f"/users/{user_id}"))

    async def get_analytics(self, user_id: int) -> Analytics:
        return Analytics.model_validate(await self._request("GET", f"/analytics/{user_id}"))

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def add_name(self, user_id: int, name: str, origin: str = None,
                       meaning: str = None, gender=None) -> int:
        """Propose a new name. Returns its id.

        Raises:
            ValidationError: *name* is blank; no request is made.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        try:
            gender = Gender(gender) if gender else None
        except ValueError:
            raise ValidationError(f"Unknown gender {gender!r}")
        payload = NameCreate(
            name_text=name,
            user_id=user_id,
            origin_text=origin or None,
            meaning_text=meaning or None,
            gender_text=gender,
        )
        row = await self._request("POST", "/names", json=payload.model_dump(mode="json"))
        return row["id"]

    async def add_names_from_file(self, user_id: int, names: Iterable[str],
                                  on_added: Callable[[str, int], None] = None) -> List[int]:
        """Add every non-blank entry of *names*; failed entries are skipped.

        Args:
            on_added: Called with the trimmed name and its new id after each
                      entry that was stored.

        Returns:
            Ids of the names that were added, in input order.
        """
        added = []
        for entry in names:
            entry = entry.strip()
            if not entry:
                continue
            try:
                name_id = await self.add_name(user_id, entry)
            except ApiError as exc:
                logger.warning("Skipped %r: %s", entry, exc)
                continue
            added.append(name_id)
            if on_added:
                on_added(entry, name_id)
        return added

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> SessionRead:
        row = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        session = SessionRead.model_validate(row)
        self.token = session.token
        return session

    async def sign_out(self) -> None:
        if not self.token:
            return
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self.token = None

    async def get_session(self) -> SessionRead:
        """Return the current session. Raises AuthError when the token is unknown."""
        if not self.token:
            raise AuthError("Not signed in")
        return SessionRead.model_validate(await self._request("GET", "/auth/session"))
