"""Business rules for accounts, support requests, feedback and announcements."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .config import DEFAULT_EMAIL_DOMAIN
from .errors import AuthenticationError, NotFoundError, StorageError, ValidationError
from .models import (
    STAFF,
    STATUS_PENDING,
    STUDENT,
    USER_TYPES,
    Announcement,
    Feedback,
    SupportRequest,
    User,
    current_timestamp,
    generate_id,
    strip_password,
)
from .security import hash_password, verify_legacy_password, verify_password
from .store import Entity, Record, RecordStore

logger = logging.getLogger("campusconnect.portal")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _full_name_index(users: List[Record]) -> Dict[str, str]:
    index: Dict[str, str] = {}
    for user in users:
        user_id = user.get("id")
        if user_id is not None and str(user_id) not in index:
            index[str(user_id)] = f"{user.get('firstName', '')} {user.get('lastName', '')}"
    return index


class CampusPortal:
    """Operations behind the HTTP routes, backed by a :class:`RecordStore`."""

    def __init__(self, store: RecordStore, *, email_domain: str = DEFAULT_EMAIL_DOMAIN) -> None:
        self._store = store
        self._email_domain = email_domain.lower()

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def email_domain(self) -> str:
        return self._email_domain

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def register(
        self,
        *,
        user_type: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        student_number: Optional[str] = None,
        staff_number: Optional[str] = None,
    ) -> User:
        user_type = _clean(user_type)
        first_name = _clean(first_name)
        last_name = _clean(last_name)
        email = _clean(email)
        student_number = _clean(student_number)
        staff_number = _clean(staff_number)

        if not user_type or not first_name or not last_name or not email or not password:
            raise ValidationError("All fields are required")
        if user_type not in USER_TYPES:
            raise ValidationError("Invalid user type")
        if user_type == STUDENT and not student_number:
            raise ValidationError("Student number is required")
        if user_type == STAFF and not staff_number:
            raise ValidationError("Staff number is required")

        normalized_email = email.lower()
        if not normalized_email.endswith(self._email_domain):
            raise ValidationError(f"Email must end with {self._email_domain}")

        identifier = student_number if user_type == STUDENT else staff_number

        with self._store.locked(Entity.USERS):
            users = self._store.read(Entity.USERS)
            for existing in users:
                if identifier in (existing.get("studentNumber"), existing.get("staffNumber")):
                    raise ValidationError("User already exists with this email or number")
                if str(existing.get("email", "")).lower() == normalized_email:
                    raise ValidationError("User already exists with this email or number")

            user = User(
                id=generate_id(),
                user_type=user_type,
                first_name=first_name,
                last_name=last_name,
                email=normalized_email,
                password_hash=hash_password(password),
                student_number=student_number if user_type == STUDENT else None,
                staff_number=staff_number if user_type == STAFF else None,
                created_at=current_timestamp(),
            )
            users.append(user.to_record())
            if not self._store.write(Entity.USERS, users):
                raise StorageError("Failed to register user")

        logger.info("Registered %s account %s", user.user_type, user.id)
        return user

    def login(
        self,
        *,
        user_type: Optional[str],
        identifier: Optional[str],
        password: Optional[str],
    ) -> Dict[str, Any]:
        """Return the matching user record without its password fields."""

        user_type = _clean(user_type)
        identifier = _clean(identifier)
        if not user_type or not identifier or not password:
            raise ValidationError("All fields are required")

        with self._store.locked(Entity.USERS):
            users = self._store.read(Entity.USERS)
            for index, record in enumerate(users):
                if record.get("userType") != user_type:
                    continue
                if identifier not in (record.get("studentNumber"), record.get("staffNumber")):
                    continue
                if verify_password(password, record.get("passwordHash")):
                    return strip_password(record)
                if "password" in record and verify_legacy_password(password, record.get("password")):
                    upgraded = strip_password(record)
                    upgraded["passwordHash"] = hash_password(password)
                    users[index] = upgraded
                    if self._store.write(Entity.USERS, users):
                        logger.info("Upgraded stored password for user %s", record.get("id"))
                    else:
                        logger.warning("Could not upgrade stored password for user %s", record.get("id"))
                    return strip_password(record)

        logger.warning("Failed login attempt for %s %s", user_type, identifier)
        raise AuthenticationError("Invalid credentials")

    def list_users(self) -> List[Dict[str, Any]]:
        return [strip_password(record) for record in self._store.read(Entity.USERS)]

    # ------------------------------------------------------------------
    # Support requests
    # ------------------------------------------------------------------
    def submit_request(
        self,
        *,
        user_id: Optional[str],
        type: Optional[str],
        details: Optional[str],
    ) -> Dict[str, Any]:
        user_id = _clean(user_id)
        type = _clean(type)
        details = _clean(details)
        if not user_id or not type or not details:
            raise ValidationError("All fields are required")

        request = SupportRequest(
            id=generate_id(),
            user_id=user_id,
            type=type,
            details=details,
            status=STATUS_PENDING,
            timestamp=current_timestamp(),
        )
        record = request.to_record()
        with self._store.locked(Entity.REQUESTS):
            requests = self._store.read(Entity.REQUESTS)
            requests.append(record)
            if not self._store.write(Entity.REQUESTS, requests):
                raise StorageError("Failed to submit request")

        logger.info("User %s submitted %s request %s", user_id, type, request.id)
        return record

    def list_requests_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return [record for record in self._store.read(Entity.REQUESTS) if record.get("userId") == user_id]

    def list_requests_with_users(self) -> List[Dict[str, Any]]:
        names = _full_name_index(self._store.read(Entity.USERS))
        return [
            {**record, "userName": names.get(str(record.get("userId")), "Unknown")}
            for record in self._store.read(Entity.REQUESTS)
        ]

    def update_request_status(self, request_id: str, status: Optional[str]) -> Dict[str, Any]:
        status = _clean(status)
        if not status:
            raise ValidationError("Status is required")
        return self._update_request(request_id, "status", status, "Failed to update request")

    def add_request_response(self, request_id: str, response: Optional[str]) -> Dict[str, Any]:
        response = _clean(response)
        if not response:
            raise ValidationError("Response is required")
        return self._update_request(request_id, "response", response, "Failed to add response")

    def _update_request(self, request_id: str, key: str, value: str, failure: str) -> Dict[str, Any]:
        with self._store.locked(Entity.REQUESTS):
            requests = self._store.read(Entity.REQUESTS)
            for record in requests:
                if record.get("id") == request_id:
                    record[key] = value
                    break
            else:
                raise NotFoundError("Request not found")

            if not self._store.write(Entity.REQUESTS, requests):
                raise StorageError(failure)

        logger.info("Request %s %s set to %r", request_id, key, value)
        return record

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    def submit_feedback(
        self,
        *,
        user_id: Optional[str],
        type: Optional[str],
        feedback: Optional[str],
    ) -> Dict[str, Any]:
        user_id = _clean(user_id)
        feedback = _clean(feedback)
        if not user_id or not feedback:
            raise ValidationError("User ID and feedback are required")

        entry = Feedback(
            id=generate_id(),
            user_id=user_id,
            type=_clean(type) or "General",
            feedback=feedback,
            timestamp=current_timestamp(),
        )
        record = entry.to_record()
        with self._store.locked(Entity.FEEDBACK):
            items = self._store.read(Entity.FEEDBACK)
            items.append(record)
            if not self._store.write(Entity.FEEDBACK, items):
                raise StorageError("Failed to submit feedback")
        return record

    def list_feedback_with_users(self) -> List[Dict[str, Any]]:
        names = _full_name_index(self._store.read(Entity.USERS))
        return [
            {**record, "userName": names.get(str(record.get("userId")), "Anonymous")}
            for record in self._store.read(Entity.FEEDBACK)
        ]

    # ------------------------------------------------------------------
    # Announcements
    # ------------------------------------------------------------------
    def list_announcements(self) -> List[Dict[str, Any]]:
        return self._store.read(Entity.ANNOUNCEMENTS)

    def post_announcement(
        self,
        *,
        title: Optional[str],
        content: Optional[str],
        type: Optional[str] = None,
    ) -> Dict[str, Any]:
        title = _clean(title)
        content = _clean(content)
        if not title or not content:
            raise ValidationError("Title and content are required")

        announcement = Announcement(
            id=generate_id(),
            title=title,
            content=content,
            type=_clean(type) or "general",
            timestamp=current_timestamp(),
        )
        record = announcement.to_record()
        with self._store.locked(Entity.ANNOUNCEMENTS):
            announcements = self._store.read(Entity.ANNOUNCEMENTS)
            announcements.insert(0, record)
            if not self._store.write(Entity.ANNOUNCEMENTS, announcements):
                raise StorageError("Failed to post announcement")

        logger.info("Posted announcement %s", announcement.id)
        return record

    def delete_announcement(self, announcement_id: str) -> bool:
        """Remove an announcement, returning ``False`` when no record matched."""

        with self._store.locked(Entity.ANNOUNCEMENTS):
            announcements = self._store.read(Entity.ANNOUNCEMENTS)
            remaining = [record for record in announcements if record.get("id") != announcement_id]
            if not self._store.write(Entity.ANNOUNCEMENTS, remaining):
                raise StorageError("Failed to delete announcement")

        return len(remaining) != len(announcements)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def stats(self) -> Dict[str, int]:
        users = self._store.read(Entity.USERS)
        requests = self._store.read(Entity.REQUESTS)
        feedback = self._store.read(Entity.FEEDBACK)
        return {
            "totalUsers": len(users),
            "totalRequests": len(requests),
            "pendingRequests": sum(1 for record in requests if record.get("status") == STATUS_PENDING),
            "totalFeedback": len(feedback),
            "studentCount": sum(1 for user in users if user.get("userType") == STUDENT),
            "staffCount": sum(1 for user in users if user.get("userType") == STAFF),
        }


__all__ = ["CampusPortal"]
