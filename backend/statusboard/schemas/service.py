from pydantic import BaseModel
from uuid import UUID
from datetime import datetime


class ServiceResponse(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    org_id: UUID
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
