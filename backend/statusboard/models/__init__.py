from statusboard.models.organization import Organization
from statusboard.models.service import Service
from statusboard.models.incident import (
    Incident,
    IncidentService,
    IncidentStatus,
    IncidentImpact,
    IncidentType,
)

__all__ = [
    "Organization",
    "Service",
    "Incident",
    "IncidentService",
    "IncidentStatus",
    "IncidentImpact",
    "IncidentType",
]
