"""Multi-tenancy utilities for scoping queries to an organization."""

from uuid import UUID


def tenant_filter(model, org_id: UUID):
    """
    Return a SQLAlchemy filter clause restricting ``model`` to one organization.

    The organization is required; there is no unscoped fallback.

    Usage:
        query = select(Incident).where(tenant_filter(Incident, org_id))
    """
    if org_id is None:
        raise ValueError(f"Organization scope is required to query {model.__name__}")
    return model.org_id == org_id


def set_tenant(obj, org_id: UUID):
    """
    Set the owning organization on a model instance before creation.

    Usage:
        incident = Incident(title="API latency", ...)
        set_tenant(incident, org_id)
    """
    if org_id is None:
        raise ValueError(f"Organization scope is required to create {type(obj).__name__}")
    obj.org_id = org_id
