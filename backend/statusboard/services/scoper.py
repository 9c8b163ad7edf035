"""Resolve a caller into an organization and check every reference stays inside it."""

import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from statusboard.errors import UnauthorizedError, TenantNotFoundError, ServiceReferenceError
from statusboard.models.organization import Organization
from statusboard.models.service import Service
from statusboard.schemas.incident import IncidentIntent
from statusboard.security import CallerIdentity
from statusboard.utils.tenant import tenant_filter

logger = logging.getLogger(__name__)


async def resolve_caller_organization(
    db: AsyncSession,
    caller: CallerIdentity,
    organization_id=None,
) -> Organization:
    """
    Load the organization the caller belongs to.

    When ``organization_id`` is given, the row must also have that id.
    """
    if not caller.is_authenticated or not caller.org_key:
        raise UnauthorizedError()

    query = select(Organization).where(Organization.auth_provider_key == caller.org_key)
    if organization_id is not None:
        query = query.where(Organization.id == organization_id)

    result = await db.execute(query)
    organization = result.scalar_one_or_none()
    if not organization:
        raise TenantNotFoundError("Organization not found")
    return organization


async def authorize_intent(
    db: AsyncSession,
    caller: CallerIdentity,
    intent: IncidentIntent,
) -> Organization:
    """All-or-nothing authorization of an incident intent. Read-only."""
    organization = await resolve_caller_organization(db, caller, intent.organization_id)

    service_ids = list(dict.fromkeys(intent.service_ids))
    count_result = await db.execute(
        select(func.count(Service.id)).where(
            Service.id.in_(service_ids),
            tenant_filter(Service, organization.id),
        )
    )
    matched = count_result.scalar() or 0

    if matched != len(service_ids):
        logger.info(
            "Rejected intent for org %s: %d of %d services resolved",
            organization.id,
            matched,
            len(service_ids),
        )
        raise ServiceReferenceError()

    return organization
