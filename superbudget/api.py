"""FastAPI application exposing authentication and project endpoints."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import Settings
from .database import Database
from .errors import ErrorKind, ServiceError
from .errors import ValidationError as ServiceValidationError
from .identity import AuthResult, IdentityService
from .models import Project, ProjectStatus, User
from .notifications import Notifier, SMTPNotifier
from .projects import NewProject, ProjectService, normalize_deadline
from .security import BearerAuth, TokenIssuer

logger = logging.getLogger("superbudget.api")

_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
}


def _strip_required(value: str, field: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field} must not be empty")
    return stripped


def _parse_deadline(value: object) -> object:
    if isinstance(value, str):
        try:
            return normalize_deadline(value)
        except ServiceValidationError as exc:
            raise ValueError(exc.message) from exc
    return value


class SignupRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        return _strip_required(value, "name")

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        stripped = value.strip()
        try:
            validate_email(stripped, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError(str(exc)) from exc
        return stripped


class SigninRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return _strip_required(value, "email")


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    name: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class AuthResponse(BaseModel):
    access_token: str
    user: UserResponse


class ProjectCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    status: ProjectStatus
    deadline: datetime
    assigned_team_member: str = Field(..., min_length=1, max_length=320, alias="assignedTeamMember")
    budget: float = Field(..., ge=0, allow_inf_nan=False)

    @field_validator("name", "assigned_team_member")
    @classmethod
    def _normalize_text(cls, value: str) -> str:
        return _strip_required(value, "value")

    @field_validator("deadline", mode="before")
    @classmethod
    def _normalize_deadline(cls, value: object) -> object:
        return _parse_deadline(value)


class ProjectUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[ProjectStatus] = None
    deadline: Optional[datetime] = None
    assigned_team_member: Optional[str] = Field(
        default=None, min_length=1, max_length=320, alias="assignedTeamMember"
    )
    budget: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    @field_validator("name", "assigned_team_member")
    @classmethod
    def _normalize_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _strip_required(value, "value")

    @field_validator("deadline", mode="before")
    @classmethod
    def _normalize_deadline(cls, value: object) -> object:
        return _parse_deadline(value)

    @model_validator(mode="after")
    def _reject_nulls(self):  # type: ignore[override]
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} must not be null")
        return self

    def changes(self) -> Dict[str, object]:
        return self.model_dump(exclude_unset=True)


class ProjectResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    status: ProjectStatus
    deadline: datetime
    assigned_team_member: str = Field(alias="assignedTeamMember")
    budget: float
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def auth_to_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(access_token=result.access_token, user=user_to_response(result.user))


def project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        status=project.status,
        deadline=project.deadline,
        assigned_team_member=project.assigned_team_member,
        budget=project.budget,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def create_app(
    *,
    database: Database,
    settings: Settings,
    notifier: Notifier | None = None,
    initialize_database: bool = False,
    password_hash_rounds: Optional[int] = None,
) -> FastAPI:
    """Build the API around explicitly supplied collaborators."""

    if initialize_database:
        database.initialize()

    if notifier is None:
        notifier = SMTPNotifier(settings.mail)

    issuer = TokenIssuer(settings.auth)
    identity = IdentityService(database, issuer, hash_rounds=password_hash_rounds)
    projects = ProjectService(database, notifier)
    auth = BearerAuth(issuer, database.get_user)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        verify = getattr(notifier, "verify", None)
        if callable(verify):
            await verify()
        try:
            yield
        finally:
            close = getattr(notifier, "close", None)
            if callable(close):
                close()

    app = FastAPI(
        title="Super Budget",
        description="Project tracking API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.database = database
    app.state.identity = identity
    app.state.projects = projects
    app.state.notifier = notifier

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    auth_router = APIRouter(prefix="/auth", tags=["auth"])

    @auth_router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
    async def signup(payload: SignupRequest) -> AuthResponse:
        result = await identity.signup(payload.email, payload.password, payload.name)
        return auth_to_response(result)

    @auth_router.post("/signin", response_model=AuthResponse)
    async def signin(payload: SigninRequest) -> AuthResponse:
        result = await identity.signin(payload.email, payload.password)
        return auth_to_response(result)

    @auth_router.get("/me", response_model=UserResponse)
    async def read_current_user(current_user: User = Depends(auth)) -> UserResponse:
        return user_to_response(current_user)

    protected_router = APIRouter(prefix="/projects", tags=["projects"], dependencies=[Depends(auth)])

    @protected_router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
    async def create_project(payload: ProjectCreateRequest) -> ProjectResponse:
        project = await projects.create(
            NewProject(
                name=payload.name,
                status=payload.status,
                deadline=payload.deadline,
                assigned_team_member=payload.assigned_team_member,
                budget=payload.budget,
            )
        )
        return project_to_response(project)

    @protected_router.get("", response_model=List[ProjectResponse])
    async def list_projects(
        status_filter: Optional[ProjectStatus] = Query(default=None, alias="status"),
    ) -> List[ProjectResponse]:
        return [project_to_response(project) for project in await projects.find_all(status_filter)]

    @protected_router.get("/{project_id}", response_model=ProjectResponse)
    async def read_project(project_id: str) -> ProjectResponse:
        return project_to_response(await projects.find_one(project_id))

    @protected_router.patch("/{project_id}", response_model=ProjectResponse)
    async def update_project(project_id: str, payload: ProjectUpdateRequest) -> ProjectResponse:
        return project_to_response(await projects.update(project_id, payload.changes()))

    @protected_router.delete("/{project_id}", response_model=ProjectResponse)
    async def delete_project(project_id: str) -> ProjectResponse:
        return project_to_response(await projects.remove(project_id))

    app.include_router(auth_router)
    app.include_router(protected_router)

    @app.exception_handler(ServiceError)
    async def handle_service_error(_: Request, exc: ServiceError):
        code = _STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(status_code=code, content={"detail": exc.message}, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors(), exclude={"input"})},
        )

    return app


__all__ = [
    "AuthResponse",
    "ProjectCreateRequest",
    "ProjectResponse",
    "ProjectUpdateRequest",
    "SigninRequest",
    "SignupRequest",
    "UserResponse",
    "create_app",
]
