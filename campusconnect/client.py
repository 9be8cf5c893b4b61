"""HTTP client for the portal API with a local state file and offline outbox."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from .config import DEFAULT_EMAIL_DOMAIN
from .models import STATUS_PENDING, current_timestamp, generate_id

logger = logging.getLogger("campusconnect.client")

MIN_PASSWORD_LENGTH = 6

FALLBACK_ANNOUNCEMENTS = (
    {
        "id": "1",
        "title": "Semester Tests",
        "content": "Semester tests start next week. Please check your timetable for specific dates and venues.",
        "type": "academic",
    },
    {
        "id": "2",
        "title": "Career Expo",
        "content": (
            "Join us for the annual Career Expo on 15 March at Pretoria Campus. "
            "Meet potential employers and explore career opportunities."
        ),
        "type": "event",
    },
)


class PortalClientError(Exception):
    """Raised when the portal rejects an operation or a local check fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotLoggedInError(PortalClientError):
    def __init__(self) -> None:
        super().__init__("You must be logged in to do that")


def _extract_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


class LocalState:
    """JSON file holding the logged-in user and the submission outbox."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data: Dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, Any]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable client state %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as handle:
            json.dump(self._data, handle, indent=2)

    @property
    def current_user(self) -> Optional[Dict[str, Any]]:
        user = self._data.get("currentUser")
        return user if isinstance(user, dict) else None

    def set_current_user(self, user: Dict[str, Any]) -> None:
        self._data["currentUser"] = user
        self._save()

    def clear(self) -> None:
        self._data.pop("currentUser", None)
        self._data.pop("requests", None)
        self._save()

    @property
    def outbox(self) -> List[Dict[str, Any]]:
        entries = self._data.get("outbox")
        return list(entries) if isinstance(entries, list) else []

    def set_outbox(self, entries: List[Dict[str, Any]]) -> None:
        self._data["outbox"] = entries
        self._save()

    @property
    def cached_requests(self) -> List[Dict[str, Any]]:
        cached = self._data.get("requests")
        return list(cached) if isinstance(cached, list) else []

    def set_cached_requests(self, requests: List[Dict[str, Any]]) -> None:
        self._data["requests"] = requests
        self._save()

    def clear_cached_requests(self) -> None:
        if self._data.pop("requests", None) is not None:
            self._save()


@dataclass
class SubmissionResult:
    message: str
    queued: bool = False
    record: Optional[Dict[str, Any]] = None


@dataclass
class Listing:
    items: List[Dict[str, Any]]
    offline: bool = False


@dataclass
class SyncReport:
    sent: List[Dict[str, Any]] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)
    remaining: int = 0


class PortalClient:
    """Talk to the portal API on behalf of one user.

    Submissions that fail at the network level are stored in the outbox and
    reported as queued; :meth:`sync_pending` delivers them later.
    """

    def __init__(
        self,
        base_url: str,
        state: LocalState,
        *,
        http: httpx.Client | None = None,
        timeout: float = 10.0,
        email_domain: str = DEFAULT_EMAIL_DOMAIN,
    ) -> None:
        cleaned = (base_url or "").strip().rstrip("/")
        if not cleaned:
            raise ValueError("API base URL must not be empty")
        self._base_url = cleaned
        self._state = state
        self._http = http if http is not None else httpx.Client(timeout=timeout)
        self._timeout = timeout
        self._email_domain = email_domain.lower()

    @property
    def state(self) -> LocalState:
        return self._state

    @property
    def current_user(self) -> Optional[Dict[str, Any]]:
        return self._state.current_user

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PortalClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self._base_url}{path}"

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and return the decoded JSON body.

        Network failures propagate as :class:`httpx.TransportError`; HTTP error
        statuses become :class:`PortalClientError`.
        """

        response = self._http.request(method, self._url(path), json=payload, timeout=self._timeout)
        try:
            body = response.json()
        except ValueError:
            body = response.text

        if response.status_code >= 400:
            default = f"Portal request failed with status {response.status_code}"
            raise PortalClientError(_extract_message(body, default), response.status_code)
        return body

    def _require_user(self) -> Dict[str, Any]:
        user = self._state.current_user
        if user is None:
            raise NotLoggedInError()
        return user

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def register(
        self,
        *,
        user_type: str,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        confirm_password: str,
        number: str,
    ) -> str:
        email = email.strip().lower()
        if not email.endswith(self._email_domain):
            raise PortalClientError(f"Email must end with {self._email_domain}")
        if password != confirm_password:
            raise PortalClientError("Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise PortalClientError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        payload: Dict[str, Any] = {
            "userType": user_type,
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
        }
        if user_type == "student":
            payload["studentNumber"] = number
        elif user_type == "staff":
            payload["staffNumber"] = number

        body = self._request("POST", "/register", payload)
        return _extract_message(body, "User registered successfully")

    def login(self, user_type: str, identifier: str, password: str) -> Dict[str, Any]:
        body = self._request(
            "POST",
            "/login",
            {"userType": user_type, "identifier": identifier, "password": password},
        )
        user = body.get("user") if isinstance(body, dict) else None
        if not isinstance(user, dict):
            raise PortalClientError("Portal returned an unexpected login response")
        previous = self._state.current_user
        if previous is None or previous.get("id") != user.get("id"):
            self._state.clear_cached_requests()
        self._state.set_current_user(user)
        logger.info("Logged in as %s", user.get("id"))
        return user

    def logout(self) -> None:
        self._state.clear()

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------
    def submit_request(self, type: str, details: str) -> SubmissionResult:
        user = self._require_user()
        if not type or not details:
            raise PortalClientError("Please complete all fields")

        payload = {"userId": user.get("id"), "type": type, "details": details}
        try:
            body = self._request("POST", "/requests", payload)
        except httpx.TransportError as exc:
            logger.warning("Request submission failed, queued for later delivery: %s", exc)
            return self._enqueue("request", payload)

        record = body.get("request") if isinstance(body, dict) else None
        return SubmissionResult(message=_extract_message(body, "Request submitted successfully"), record=record)

    def submit_feedback(self, type: Optional[str], feedback: str) -> SubmissionResult:
        user = self._require_user()
        if not feedback:
            raise PortalClientError("Please enter feedback")

        payload = {"userId": user.get("id"), "type": type, "feedback": feedback}
        try:
            body = self._request("POST", "/feedback", payload)
        except httpx.TransportError as exc:
            logger.warning("Feedback submission failed, queued for later delivery: %s", exc)
            return self._enqueue("feedback", payload)

        return SubmissionResult(message=_extract_message(body, "Feedback submitted successfully"))

    def _enqueue(self, kind: str, payload: Dict[str, Any]) -> SubmissionResult:
        entry = {
            "localId": generate_id(),
            "kind": kind,
            "payload": payload,
            "queuedAt": current_timestamp(),
        }
        outbox = self._state.outbox
        outbox.append(entry)
        self._state.set_outbox(outbox)
        return SubmissionResult(
            message="Portal unreachable; submission saved and will be sent when the connection returns",
            queued=True,
            record=entry,
        )

    def sync_pending(self) -> SyncReport:
        """Deliver queued submissions in order.

        Entries the portal rejects with a 4xx are dropped. A network failure or a
        5xx stops the run and leaves the entry at the head of the outbox.
        """

        report = SyncReport()
        outbox = self._state.outbox
        while outbox:
            entry = outbox[0]
            path = "/requests" if entry.get("kind") == "request" else "/feedback"
            try:
                self._request("POST", path, entry.get("payload") or {})
            except httpx.TransportError as exc:
                logger.info("Portal still unreachable, %d submission(s) left in outbox: %s", len(outbox), exc)
                break
            except PortalClientError as exc:
                if exc.status_code is None or exc.status_code >= 500:
                    logger.warning(
                        "Portal failed to store queued %s %s, keeping it in outbox: %s",
                        entry.get("kind"),
                        entry.get("localId"),
                        exc,
                    )
                    break
                logger.warning("Portal rejected queued %s %s: %s", entry.get("kind"), entry.get("localId"), exc)
                report.rejected.append(entry)
            else:
                report.sent.append(entry)
            outbox.pop(0)
            self._state.set_outbox(outbox)

        report.remaining = len(outbox)
        return report

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def _queued_requests(self, user_id: object) -> List[Dict[str, Any]]:
        queued: List[Dict[str, Any]] = []
        for entry in self._state.outbox:
            payload = entry.get("payload") or {}
            if entry.get("kind") != "request" or payload.get("userId") != user_id:
                continue
            queued.append(
                {
                    "id": entry.get("localId"),
                    "userId": user_id,
                    "type": payload.get("type"),
                    "details": payload.get("details"),
                    "status": STATUS_PENDING,
                    "timestamp": entry.get("queuedAt"),
                    "pendingSync": True,
                }
            )
        return queued

    def list_requests(self) -> Listing:
        user = self._require_user()
        user_id = user.get("id")
        try:
            body = self._request("GET", f"/requests/{user_id}")
        except (httpx.TransportError, PortalClientError) as exc:
            logger.warning("Load requests error, showing local copy: %s", exc)
            cached = [item for item in self._state.cached_requests if item.get("userId") == user_id]
            return Listing(items=cached + self._queued_requests(user_id), offline=True)

        items = list(body) if isinstance(body, list) else []
        self._state.set_cached_requests(items)
        return Listing(items=items + self._queued_requests(user_id))

    def list_announcements(self) -> Listing:
        try:
            body = self._request("GET", "/announcements")
        except (httpx.TransportError, PortalClientError) as exc:
            logger.warning("Load announcements error, showing defaults: %s", exc)
            now = current_timestamp()
            return Listing(items=[{**item, "timestamp": now} for item in FALLBACK_ANNOUNCEMENTS], offline=True)
        return Listing(items=list(body) if isinstance(body, list) else [])


__all__ = [
    "FALLBACK_ANNOUNCEMENTS",
    "Listing",
    "LocalState",
    "NotLoggedInError",
    "PortalClient",
    "PortalClientError",
    "SubmissionResult",
    "SyncReport",
]
