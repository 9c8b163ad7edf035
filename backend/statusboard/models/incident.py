"""Incident and IncidentService models."""

import enum
import uuid
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, Enum, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from statusboard.db.postgres import Base


class IncidentStatus(str, enum.Enum):
    INVESTIGATING = "investigating"
    IDENTIFIED = "identified"
    MONITORING = "monitoring"
    RESOLVED = "resolved"


class IncidentImpact(str, enum.Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class IncidentType(str, enum.Enum):
    INCIDENT = "incident"
    MAINTENANCE = "maintenance"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Stored by value ("investigating"), not by member name
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Incident(Base):
    __tablename__ = "incidents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text)
    status: Mapped[IncidentStatus] = mapped_column(_enum_column(IncidentStatus, "incident_status"))
    impact: Mapped[IncidentImpact] = mapped_column(_enum_column(IncidentImpact, "incident_impact"))
    type: Mapped[IncidentType] = mapped_column(
        _enum_column(IncidentType, "incident_type"), default=IncidentType.INCIDENT
    )
    started_at: Mapped[datetime] = mapped_column(DateTime)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Multi-tenancy
    org_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )

    organization = relationship("Organization", back_populates="incidents")
    service_links: Mapped[list["IncidentService"]] = relationship(
        back_populates="incident", cascade="all, delete-orphan"
    )

    @property
    def services(self) -> list:
        """Associated Service records."""
        return [link.service for link in self.service_links]


class IncidentService(Base):
    """Association row between an incident and an affected service."""
    __tablename__ = "incident_services"

    incident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("incidents.id", ondelete="CASCADE"), primary_key=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id"), primary_key=True, index=True
    )

    incident: Mapped["Incident"] = relationship(back_populates="service_links")
    service = relationship("Service")
