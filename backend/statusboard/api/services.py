from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from statusboard.db.postgres import get_db
from statusboard.errors import IncidentError
from statusboard.models.service import Service
from statusboard.schemas.service import ServiceResponse
from statusboard.security import CallerIdentity, get_caller
from statusboard.services.scoper import resolve_caller_organization
from statusboard.utils.tenant import tenant_filter

router = APIRouter()


@router.get("", response_model=list[ServiceResponse])
async def list_services(
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Services the caller's organization can attach to an incident."""
    try:
        organization = await resolve_caller_organization(db, caller)
    except IncidentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)

    result = await db.execute(
        select(Service)
        .where(tenant_filter(Service, organization.id))
        .order_by(Service.name)
    )
    return result.scalars().all()
