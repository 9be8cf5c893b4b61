"""Domain models persisted by the record store."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

STUDENT = "student"
STAFF = "staff"
USER_TYPES = (STUDENT, STAFF)

STATUS_PENDING = "Pending"

PASSWORD_FIELDS = ("password", "passwordHash")


def current_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""

    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _IdGenerator:
    """Millisecond clock ids, bumped forward when two ids land on the same tick."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = int(time.time() * 1000)
            if value <= self._last:
                value = self._last + 1
            self._last = value
        return str(value)


generate_id = _IdGenerator()


def strip_password(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in record.items() if key not in PASSWORD_FIELDS}


@dataclass(frozen=True)
class User:
    """Represents a registered student or staff account."""

    id: str
    user_type: str
    first_name: str
    last_name: str
    email: str
    password_hash: Optional[str]
    student_number: Optional[str]
    staff_number: Optional[str]
    created_at: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userType": self.user_type,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "passwordHash": self.password_hash,
            "studentNumber": self.student_number,
            "staffNumber": self.staff_number,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class SupportRequest:
    """A support request raised by a user and tracked by administrators."""

    id: str
    user_id: str
    type: str
    details: str
    status: str
    timestamp: str
    response: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "details": self.details,
            "status": self.status,
            "timestamp": self.timestamp,
        }
        if self.response is not None:
            record["response"] = self.response
        return record


@dataclass(frozen=True)
class Feedback:
    id: str
    user_id: str
    type: str
    feedback: str
    timestamp: str

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "feedback": self.feedback,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Announcement:
    id: str
    title: str
    content: str
    type: str
    timestamp: str

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "timestamp": self.timestamp,
        }


__all__ = [
    "Announcement",
    "Feedback",
    "SupportRequest",
    "User",
    "STUDENT",
    "STAFF",
    "USER_TYPES",
    "STATUS_PENDING",
    "current_timestamp",
    "generate_id",
    "strip_password",
]
