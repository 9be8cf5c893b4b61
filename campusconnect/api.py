"""FastAPI application exposing the CampusConnect JSON API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import Settings, load_settings
from .errors import PortalError
from .portal import CampusPortal
from .security import AdminTokenAuth
from .store import RecordStore

logger = logging.getLogger("campusconnect.api")


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalars(cls, value: object) -> object:
        # Student and staff numbers are often sent as JSON numbers.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class RegisterRequest(_Payload):
    user_type: Optional[str] = Field(default=None, alias="userType")
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    password: Optional[str] = None
    student_number: Optional[str] = Field(default=None, alias="studentNumber")
    staff_number: Optional[str] = Field(default=None, alias="staffNumber")


class LoginRequest(_Payload):
    user_type: Optional[str] = Field(default=None, alias="userType")
    identifier: Optional[str] = None
    password: Optional[str] = None


class SupportRequestCreate(_Payload):
    user_id: Optional[str] = Field(default=None, alias="userId")
    type: Optional[str] = None
    details: Optional[str] = None


class FeedbackCreate(_Payload):
    user_id: Optional[str] = Field(default=None, alias="userId")
    type: Optional[str] = None
    feedback: Optional[str] = None


class StatusUpdate(_Payload):
    status: Optional[str] = None


class ResponseUpdate(_Payload):
    response: Optional[str] = None


class AnnouncementCreate(_Payload):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None


ENDPOINTS = (
    ("POST", "/api/register", "Register new user"),
    ("POST", "/api/login", "User login"),
    ("POST", "/api/requests", "Submit service request"),
    ("GET", "/api/requests/{userId}", "Get user requests"),
    ("POST", "/api/feedback", "Submit feedback"),
    ("GET", "/api/announcements", "List announcements"),
    ("GET", "/api/admin/stats", "Admin statistics"),
)


def create_app(
    *,
    settings: Settings | None = None,
    store: RecordStore | None = None,
    initialize_store: bool = True,
) -> FastAPI:
    if settings is None:
        settings = load_settings()
    if store is None:
        store = RecordStore(settings.data_dir)
    if initialize_store:
        store.initialize()

    portal = CampusPortal(store, email_domain=settings.email_domain)
    admin_auth = AdminTokenAuth(settings.admin_tokens)

    app = FastAPI(
        title="CampusConnect",
        description="Campus services portal: accounts, support requests, feedback and announcements",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.portal = portal

    def get_portal() -> CampusPortal:
        return portal

    api = APIRouter(prefix="/api")

    @api.get("/health")
    def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @api.post("/register", status_code=status.HTTP_201_CREATED)
    def register(payload: RegisterRequest, svc: CampusPortal = Depends(get_portal)) -> Dict[str, Any]:
        svc.register(
            user_type=payload.user_type,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            student_number=payload.student_number,
            staff_number=payload.staff_number,
        )
        return {"message": "User registered successfully"}

    @api.post("/login")
    def login(payload: LoginRequest, svc: CampusPortal = Depends(get_portal)) -> Dict[str, Any]:
        user = svc.login(
            user_type=payload.user_type,
            identifier=payload.identifier,
            password=payload.password,
        )
        return {"message": "Login successful", "user": user}

    @api.post("/requests", status_code=status.HTTP_201_CREATED)
    def submit_request(payload: SupportRequestCreate, svc: CampusPortal = Depends(get_portal)) -> Dict[str, Any]:
        record = svc.submit_request(user_id=payload.user_id, type=payload.type, details=payload.details)
        return {"message": "Request submitted successfully", "request": record}

    @api.get("/requests/{user_id}")
    def list_user_requests(user_id: str, svc: CampusPortal = Depends(get_portal)) -> List[Dict[str, Any]]:
        return svc.list_requests_for_user(user_id)

    @api.post("/feedback", status_code=status.HTTP_201_CREATED)
    def submit_feedback(payload: FeedbackCreate, svc: CampusPortal = Depends(get_portal)) -> Dict[str, Any]:
        svc.submit_feedback(user_id=payload.user_id, type=payload.type, feedback=payload.feedback)
        return {"message": "Feedback submitted successfully"}

    @api.get("/announcements")
    def list_announcements(svc: CampusPortal = Depends(get_portal)) -> List[Dict[str, Any]]:
        return svc.list_announcements()

    admin = APIRouter(prefix="/admin", dependencies=[Depends(admin_auth)])

    @admin.get("/users")
    def admin_users(svc: CampusPortal = Depends(get_portal)) -> List[Dict[str, Any]]:
        return svc.list_users()

    @admin.get("/requests")
    def admin_requests(svc: CampusPortal = Depends(get_portal)) -> List[Dict[str, Any]]:
        return svc.list_requests_with_users()

    @admin.put("/requests/{request_id}")
    def admin_update_request(
        request_id: str,
        payload: StatusUpdate,
        svc: CampusPortal = Depends(get_portal),
    ) -> Dict[str, Any]:
        svc.update_request_status(request_id, payload.status)
        return {"message": "Request updated successfully"}

    @admin.put("/requests/{request_id}/response")
    def admin_respond_to_request(
        request_id: str,
        payload: ResponseUpdate,
        svc: CampusPortal = Depends(get_portal),
    ) -> Dict[str, Any]:
        svc.add_request_response(request_id, payload.response)
        return {"message": "Response added successfully"}

    @admin.post("/announcements", status_code=status.HTTP_201_CREATED)
    def admin_post_announcement(
        payload: AnnouncementCreate,
        svc: CampusPortal = Depends(get_portal),
    ) -> Dict[str, Any]:
        record = svc.post_announcement(title=payload.title, content=payload.content, type=payload.type)
        return {"message": "Announcement posted successfully", "announcement": record}

    @admin.delete("/announcements/{announcement_id}")
    def admin_delete_announcement(announcement_id: str, svc: CampusPortal = Depends(get_portal)) -> Dict[str, Any]:
        deleted = svc.delete_announcement(announcement_id)
        return {"message": "Announcement deleted successfully", "deleted": deleted}

    @admin.get("/feedback")
    def admin_feedback(svc: CampusPortal = Depends(get_portal)) -> List[Dict[str, Any]]:
        return svc.list_feedback_with_users()

    @admin.get("/stats")
    def admin_stats(svc: CampusPortal = Depends(get_portal)) -> Dict[str, int]:
        return svc.stats()

    api.include_router(admin)
    app.include_router(api)

    @app.exception_handler(PortalError)
    async def handle_portal_error(request: Request, exc: PortalError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_invalid_body(_: Request, exc: RequestValidationError):
        logger.debug("Rejected request body: %s", exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": "Invalid request body"})

    static_dir = settings.static_dir
    if static_dir is not None:
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
        else:
            logger.warning("Static directory %s does not exist; front-end not served", static_dir)

    return app


__all__ = ["create_app", "ENDPOINTS"]
