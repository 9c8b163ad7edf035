"""Intake validation for incident payloads."""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from statusboard.schemas.incident import IncidentIntent


@dataclass
class ValidationFailure:
    """Every constraint the payload violated, in pydantic's reporting order."""
    violations: list[dict] = field(default_factory=list)

    @property
    def fields(self) -> set[str]:
        return {v["field"].split(".")[0] for v in self.violations}


def _field_name(loc: tuple) -> str:
    if not loc:
        return "body"
    return ".".join(str(part) for part in loc)


def validate_incident_intent(raw: Any) -> IncidentIntent | ValidationFailure:
    """
    Turn a raw payload into an IncidentIntent, or list everything wrong with it.

    Pure and total: malformed input is classified, never raised.
    """
    try:
        return IncidentIntent.model_validate(raw)
    except ValidationError as exc:
        violations = [
            {"field": _field_name(error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        return ValidationFailure(violations=violations)
