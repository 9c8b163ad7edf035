"""Incident persistence.

Every function here runs inside a transaction owned by the caller
(``async with session.begin()``) and takes the owning organization as a
required argument.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from statusboard.errors import TenantNotFoundError
from statusboard.models.incident import Incident, IncidentService, IncidentStatus
from statusboard.schemas.incident import IncidentIntent
from statusboard.utils.tenant import tenant_filter, set_tenant


def _apply_resolution(incident: Incident, now: datetime) -> None:
    if incident.status == IncidentStatus.RESOLVED:
        if incident.resolved_at is None:
            incident.resolved_at = now
    else:
        incident.resolved_at = None


async def _attach_services(db: AsyncSession, incident_id: UUID, service_ids: list[UUID]) -> None:
    db.add_all([
        IncidentService(incident_id=incident_id, service_id=service_id)
        for service_id in service_ids
    ])
    await db.flush()


async def load_incident(db: AsyncSession, org_id: UUID, incident_id: UUID) -> Incident | None:
    """Tenant-scoped read of an incident with its services."""
    result = await db.execute(
        select(Incident)
        .where(
            Incident.id == incident_id,
            tenant_filter(Incident, org_id),
        )
        .options(selectinload(Incident.service_links).selectinload(IncidentService.service))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_incident(db: AsyncSession, org_id: UUID, intent: IncidentIntent) -> Incident:
    now = datetime.utcnow()
    incident = Incident(
        title=intent.title,
        description=intent.description,
        status=intent.status,
        impact=intent.impact,
        type=intent.type,
        started_at=now,
    )
    set_tenant(incident, org_id)
    _apply_resolution(incident, now)
    db.add(incident)
    await db.flush()

    await _attach_services(db, incident.id, intent.service_ids)

    return await load_incident(db, org_id, incident.id)


async def update_incident(
    db: AsyncSession,
    org_id: UUID,
    incident_id: UUID,
    intent: IncidentIntent,
) -> Incident:
    """
    Overwrite the mutable fields and replace the whole service set.

    The incident row is locked first so two updates of the same incident
    serialize; updates of different incidents do not contend.
    """
    result = await db.execute(
        select(Incident)
        .where(
            Incident.id == incident_id,
            tenant_filter(Incident, org_id),
        )
        .with_for_update()
    )
    incident = result.scalar_one_or_none()
    if not incident:
        raise TenantNotFoundError("Incident not found")

    incident.title = intent.title
    incident.description = intent.description
    incident.status = intent.status
    incident.impact = intent.impact
    _apply_resolution(incident, datetime.utcnow())

    # Replace, don't diff
    await db.execute(
        delete(IncidentService).where(IncidentService.incident_id == incident.id)
    )
    await _attach_services(db, incident.id, intent.service_ids)

    return await load_incident(db, org_id, incident.id)


async def list_incidents(
    db: AsyncSession,
    org_id: UUID,
    status: IncidentStatus | None = None,
    limit: int = 50,
) -> list[Incident]:
    query = (
        select(Incident)
        .where(tenant_filter(Incident, org_id))
        .options(selectinload(Incident.service_links).selectinload(IncidentService.service))
        .order_by(Incident.started_at.desc())
        .limit(limit)
    )
    if status is not None:
        query = query.where(Incident.status == status)

    result = await db.execute(query)
    return list(result.scalars().all())
