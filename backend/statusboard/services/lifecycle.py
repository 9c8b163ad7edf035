"""Request orchestration for incident create and update.

    received -> validated -> authorized -> written -> notified -> responded

Every stage short-circuits by raising an IncidentError. Nothing is retried.
"""

import asyncio
import enum
import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statusboard.errors import IncidentError, IncidentValidationError, IncidentWriteError, TenantNotFoundError
from statusboard.schemas.incident import IncidentIntent, IncidentResponse
from statusboard.security import CallerIdentity
from statusboard.services.incident_writer import create_incident, update_incident
from statusboard.services.notifier import IncidentNotifier, IncidentOperation
from statusboard.services.scoper import authorize_intent
from statusboard.services.validator import ValidationFailure, validate_incident_intent

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    AUTHORIZED = "authorized"
    WRITTEN = "written"
    NOTIFIED = "notified"
    RESPONDED = "responded"


def _log_detached_outcome(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.warning("Incident write abandoned after the caller disconnected")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Incident write failed after the caller disconnected: %s",
            type(exc).__name__,
            exc_info=exc,
        )
    else:
        logger.info("Incident %s completed after the caller disconnected", task.result().id)


class IncidentLifecycleController:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], notifier: IncidentNotifier):
        self.session_factory = session_factory
        self.notifier = notifier

    async def create(self, caller: CallerIdentity, raw) -> IncidentResponse:
        return await self._handle(IncidentOperation.CREATE, caller, raw)

    async def update(self, caller: CallerIdentity, incident_id: str | UUID, raw) -> IncidentResponse:
        try:
            target = incident_id if isinstance(incident_id, UUID) else UUID(str(incident_id))
        except ValueError:
            raise TenantNotFoundError("Incident not found") from None
        return await self._handle(IncidentOperation.UPDATE, caller, raw, target)

    async def _handle(
        self,
        operation: IncidentOperation,
        caller: CallerIdentity,
        raw,
        incident_id: UUID | None = None,
    ) -> IncidentResponse:
        self._log_stage(operation, Stage.RECEIVED)
        try:
            intent = self._validate(raw)
            self._log_stage(operation, Stage.VALIDATED)

            async with self.session_factory() as db:
                organization = await authorize_intent(db, caller, intent)
            self._log_stage(operation, Stage.AUTHORIZED)

            # Shielded: a caller disconnect must neither half-apply the write
            # nor drop the notification for a committed one
            tail = asyncio.ensure_future(
                self._write_and_notify(operation, organization.id, intent, incident_id)
            )
            try:
                response = await asyncio.shield(tail)
            except asyncio.CancelledError:
                # Nobody awaits the tail any more; its outcome goes to the log
                tail.add_done_callback(_log_detached_outcome)
                raise
        except IncidentError as exc:
            logger.info("%s rejected: %s (%d)", operation.value, type(exc).__name__, exc.status_code)
            self._log_stage(operation, Stage.RESPONDED)
            raise

        self._log_stage(operation, Stage.RESPONDED)
        return response

    def _validate(self, raw) -> IncidentIntent:
        result = validate_incident_intent(raw)
        if isinstance(result, ValidationFailure):
            raise IncidentValidationError(result.violations)
        return result

    async def _write_and_notify(
        self,
        operation: IncidentOperation,
        org_id: UUID,
        intent: IncidentIntent,
        incident_id: UUID | None,
    ) -> IncidentResponse:
        response = await self._write(operation, org_id, intent, incident_id)
        self._log_stage(operation, Stage.WRITTEN)

        outcome = await self.notifier.publish_incident(
            org_id, operation, response.model_dump(mode="json")
        )
        logger.info(
            "Incident %s %s: notify_status=%s channel=%s",
            response.id,
            operation.value,
            "delivered" if outcome.delivered else "failed",
            outcome.channel,
        )
        self._log_stage(operation, Stage.NOTIFIED)
        return response

    async def _write(
        self,
        operation: IncidentOperation,
        org_id: UUID,
        intent: IncidentIntent,
        incident_id: UUID | None,
    ) -> IncidentResponse:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    if operation == IncidentOperation.CREATE:
                        incident = await create_incident(db, org_id, intent)
                    elif operation == IncidentOperation.UPDATE:
                        incident = await update_incident(db, org_id, incident_id, intent)
                    else:
                        raise ValueError(f"Unknown operation: {operation}")
                    response = IncidentResponse.model_validate(incident)
        except SQLAlchemyError as exc:
            logger.exception("Incident %s failed for org %s", operation.value, org_id)
            raise IncidentWriteError() from exc
        return response

    def _log_stage(self, operation: IncidentOperation, stage: Stage) -> None:
        logger.debug("incident %s: %s", operation.value, stage.value)
