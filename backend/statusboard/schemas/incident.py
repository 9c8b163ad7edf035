"""Pydantic schemas for incidents."""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_validator

from statusboard.models.incident import IncidentStatus, IncidentImpact, IncidentType
from statusboard.schemas.service import ServiceResponse


class IncidentIntent(BaseModel):
    """Validated create/update payload.

    Accepts the camelCase keys sent by the dashboard form
    (``serviceIds``, ``organizationId``) as well as the snake_case names.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=10, max_length=1000)
    status: IncidentStatus
    impact: IncidentImpact
    service_ids: list[UUID] = Field(..., alias="serviceIds", min_length=1)
    organization_id: UUID = Field(..., alias="organizationId")
    type: IncidentType = IncidentType.INCIDENT

    @field_validator("service_ids")
    @classmethod
    def dedupe_service_ids(cls, value: list[UUID]) -> list[UUID]:
        # Keep first occurrence order
        return list(dict.fromkeys(value))


class Violation(BaseModel):
    field: str
    message: str


class IncidentResponse(BaseModel):
    id: UUID
    org_id: UUID
    title: str
    description: str
    status: IncidentStatus
    impact: IncidentImpact
    type: IncidentType
    started_at: datetime
    resolved_at: datetime | None = None
    services: list[ServiceResponse] = []

    model_config = {"from_attributes": True}
