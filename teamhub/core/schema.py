from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, constr
from pydantic.alias_generators import to_camel

ReportType = Literal["financial", "performance", "operational", "custom"]
ReportStatus = Literal["pending", "in_progress", "completed", "failed"]
WidgetType = Literal["chart", "table", "metric", "timeline", "map"]
TeamStatus = Literal["active", "inactive", "archived"]
UserRole = Literal["user", "admin", "superadmin"]

Email = constr(strip_whitespace=True, to_lower=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ApiModel(BaseModel):
    """Snake-case fields in storage, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class InputModel(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    NULLABLE: ClassVar[frozenset[str]] = frozenset({"description"})

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent, keyed by storage name."""
        sent = self.model_dump(exclude_unset=True)
        return {key: value for key, value in sent.items() if value is not None or key in self.NULLABLE}


# ----------------------------------------------------------------------
# stored records
# ----------------------------------------------------------------------
class UserRecord(ApiModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole = "user"
    teams: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class TeamRecord(ApiModel):
    id: str
    name: str
    description: str | None = None
    members: list[str] = Field(default_factory=list)
    leader: str
    status: TeamStatus = "active"
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


class ReportError(ApiModel):
    message: str
    timestamp: str


class ReportRecord(ApiModel):
    id: str
    title: str
    description: str | None = None
    type: ReportType
    status: ReportStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    data: dict[str, Any] = Field(default_factory=dict)
    team: str
    created_by: str
    assigned_to: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    errors: list[ReportError] = Field(default_factory=list)
    created_at: str
    updated_at: str


class WidgetPosition(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    row: int = Field(ge=0)
    col: int = Field(ge=0)
    size_x: int = Field(ge=1)
    size_y: int = Field(ge=1)


class Widget(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    type: WidgetType
    title: constr(strip_whitespace=True, min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    position: WidgetPosition


class DashboardRecord(ApiModel):
    id: str
    name: str
    description: str | None = None
    widgets: list[Widget] = Field(default_factory=list)
    team: str
    created_by: str
    shared_with: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


# ----------------------------------------------------------------------
# request payloads
# ----------------------------------------------------------------------
class UserCreate(InputModel):
    email: Email
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: UserRole = "user"


class TeamCreate(InputModel):
    name: str = Field(min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    members: list[str] = Field(default_factory=list)
    leader: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TeamPatch(InputModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    members: list[str] | None = None
    status: TeamStatus | None = None
    metadata: dict[str, Any] | None = None


class ReportCreate(InputModel):
    title: str = Field(min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    type: ReportType
    data: dict[str, Any] = Field(default_factory=dict)
    team: str = Field(min_length=1)
    assigned_to: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ReportPatch(InputModel):
    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    type: ReportType | None = None
    data: dict[str, Any] | None = None
    status: ReportStatus | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    assigned_to: list[str] | None = None
    metadata: dict[str, Any] | None = None


class DashboardCreate(InputModel):
    name: str = Field(min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    widgets: list[Widget] = Field(default_factory=list)
    team: str = Field(min_length=1)
    shared_with: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DashboardPatch(InputModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    widgets: list[Widget] | None = None
    shared_with: list[str] | None = None
    metadata: dict[str, Any] | None = None
