"""
Vendor API adapter - isolates the HTTP calls to the access-control server.

Login yields a session token that every later call sends back in the
``bs-session-id`` header. The client is async and meant to be shared by all
concurrently scheduled provisioning tasks of one run.
"""

from typing import Any, Dict, List, Optional, Type

import httpx
from pydantic import ValidationError

from ..config import SeedConfig
from ..domain.models import Card, UserRecord
from ..exceptions import (
    APIError, AuthError, CardCreationError, AllocationError, SubmissionError, BlacklistError
)
from ..logger import StructuredLogger, get_logger
from ..schemas import CreatedCardRow, IdRef, UserPayload

SESSION_HEADER = "bs-session-id"


class VendorClient:
    """Async client for the vendor endpoints used by the seeding toolkit."""

    def __init__(self, config: SeedConfig, transport: Optional[httpx.AsyncBaseTransport] = None,
                 logger: Optional[StructuredLogger] = None):
        self.config = config
        self.logger = logger or get_logger()
        self.session_id: Optional[str] = None
        self._http = httpx.AsyncClient(
            timeout=config.http_timeout,
            verify=config.verify_ssl,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> 'VendorClient':
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> Dict[str, str]:
        if not self.session_id:
            raise AuthError("No session; log in first")
        return {SESSION_HEADER: self.session_id}

    async def _send(self, error_cls: Type[APIError], method: str, endpoint: str,
                    json: Optional[Dict[str, Any]] = None, authenticated: bool = True) -> httpx.Response:
        """Send one request, mapping transport errors and non-2xx statuses to ``error_cls``."""
        url = self.config.url(endpoint)
        headers = self._headers() if authenticated else None
        try:
            response = await self._http.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise error_cls(f"{method} {url} failed: {e}", endpoint=url) from e

        if response.is_error:
            raise error_cls(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
                endpoint=url
            )
        return response

    async def acquire_session(self) -> str:
        """Log in once and keep the session token for all later calls."""
        body = {"User": {"login_id": self.config.login_id, "password": self.config.password}}
        response = await self._send(AuthError, "POST", "login", json=body, authenticated=False)

        session_id = response.headers.get(SESSION_HEADER)
        if not session_id:
            raise AuthError(
                f"{SESSION_HEADER} not found in login response headers",
                status_code=response.status_code,
                response_body=response.text,
                endpoint=str(response.request.url)
            )

        self.session_id = session_id
        self.logger.info("login_succeeded", {"login_id": self.config.login_id})
        return session_id

    async def bulk_create_cards(self, cards: List[Card]) -> List[Card]:
        """
        Create all cards in one call and merge the server-assigned fields back in.

        Every requested card must come back with a server ``id``; users and
        blacklist entries reference cards by that id only.
        """
        body = {"CardCollection": {"rows": [card.to_row() for card in cards]}}
        response = await self._send(CardCreationError, "POST", "cards", json=body)
        url = str(response.request.url)

        try:
            payload = response.json()
        except ValueError:
            raise CardCreationError("card create response is not JSON", status_code=response.status_code,
                                    response_body=response.text, endpoint=url) from None
        rows = _extract_rows(payload)

        echoed: Dict[str, CreatedCardRow] = {}
        for raw in rows:
            try:
                row = CreatedCardRow(**raw)
            except (TypeError, ValidationError) as e:
                self.logger.warning("card_row_unparsed", {"row": raw, "error": str(e)})
                continue
            if row.id:
                echoed[row.card_id] = row

        missing = [card.card_id for card in cards if card.card_id not in echoed]
        if missing:
            self.logger.error("cards_missing_server_id", {"requested": len(cards), "missing": missing})
            raise CardCreationError(
                f"{len(missing)} of {len(cards)} card(s) came back without a server id: {', '.join(missing)}",
                status_code=response.status_code,
                response_body=response.text,
                endpoint=url
            )

        created: List[Card] = []
        for card in cards:
            row = echoed[card.card_id]
            created.append(Card(
                card_id=card.card_id,
                card_type=card.card_type,
                wiegand_format_id=card.wiegand_format_id,
                id=row.id,
                display_card_id=row.display_card_id
            ))

        self.logger.info("cards_created", {"requested": len(cards), "echoed": len(echoed)})
        return created

    async def fetch_next_user_id(self) -> int:
        """Current user-id high-water mark of the server."""
        response = await self._send(AllocationError, "GET", "next_user_id")
        try:
            payload = response.json()
        except ValueError:
            raise AllocationError("next user id response is not JSON", status_code=response.status_code,
                                  response_body=response.text, endpoint=str(response.request.url)) from None

        value = payload.get("user_id") if isinstance(payload, dict) else None
        if value is None and isinstance(payload, dict) and isinstance(payload.get("User"), dict):
            value = payload["User"].get("user_id")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise AllocationError(f"No usable user_id in response: {value!r}", status_code=response.status_code,
                                  response_body=response.text, endpoint=str(response.request.url)) from None

    async def create_user(self, user: UserRecord) -> Dict[str, Any]:
        """Submit one user bound to its card."""
        profile = user.profile
        payload = UserPayload(
            user_id=str(user.user_id),
            name=profile.name,
            email=profile.email,
            department=profile.department,
            user_title=profile.title,
            password=profile.password,
            user_ip=profile.ip,
            cards=[IdRef(id=user.card.reference_id)]
        )
        response = await self._send(SubmissionError, "POST", "users", json=payload.envelope())
        try:
            return response.json()
        except ValueError:
            return {}

    async def blacklist_card(self, card: Card) -> None:
        """Mark one card as blacklisted."""
        body = {"Blacklist": {"card_id": {"id": card.reference_id}}}
        await self._send(BlacklistError, "POST", "blacklist", json=body)


def _extract_rows(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    collection = payload.get("CardCollection")
    if isinstance(collection, dict) and isinstance(collection.get("rows"), list):
        return collection["rows"]
    if isinstance(payload.get("rows"), list):
        return payload["rows"]
    return []
