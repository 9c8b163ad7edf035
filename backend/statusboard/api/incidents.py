from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from uuid import UUID

from statusboard.db.postgres import get_db, get_session_factory
from statusboard.errors import IncidentError, IncidentValidationError
from statusboard.models.incident import IncidentStatus
from statusboard.schemas.incident import IncidentResponse
from statusboard.security import CallerIdentity, get_caller
from statusboard.services.incident_writer import list_incidents, load_incident
from statusboard.services.lifecycle import IncidentLifecycleController
from statusboard.services.notifier import IncidentNotifier, get_notifier
from statusboard.services.scoper import resolve_caller_organization

router = APIRouter()


def get_controller(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    notifier: IncidentNotifier = Depends(get_notifier),
) -> IncidentLifecycleController:
    return IncidentLifecycleController(session_factory, notifier)


def to_http_error(exc: IncidentError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


async def read_payload(request: Request):
    try:
        return await request.json()
    except ValueError:
        raise to_http_error(IncidentValidationError(
            [{"field": "body", "message": "Request body must be valid JSON"}]
        ))


@router.get("", response_model=list[IncidentResponse])
async def get_incidents(
    status: IncidentStatus | None = None,
    limit: int = 50,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    try:
        organization = await resolve_caller_organization(db, caller)
    except IncidentError as exc:
        raise to_http_error(exc)

    incidents = await list_incidents(db, organization.id, status=status, limit=limit)
    return [IncidentResponse.model_validate(incident) for incident in incidents]


@router.post("", response_model=IncidentResponse)
async def create_incident(
    request: Request,
    caller: CallerIdentity = Depends(get_caller),
    controller: IncidentLifecycleController = Depends(get_controller),
):
    payload = await read_payload(request)
    try:
        return await controller.create(caller, payload)
    except IncidentError as exc:
        raise to_http_error(exc)


@router.get("/{incident_id}", response_model=IncidentResponse)
async def get_incident(
    incident_id: UUID,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    try:
        organization = await resolve_caller_organization(db, caller)
    except IncidentError as exc:
        raise to_http_error(exc)

    incident = await load_incident(db, organization.id, incident_id)
    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")

    return IncidentResponse.model_validate(incident)


@router.patch("/{incident_id}", response_model=IncidentResponse)
async def update_incident(
    incident_id: str,
    request: Request,
    caller: CallerIdentity = Depends(get_caller),
    controller: IncidentLifecycleController = Depends(get_controller),
):
    payload = await read_payload(request)
    try:
        return await controller.update(caller, incident_id, payload)
    except IncidentError as exc:
        raise to_http_error(exc)
