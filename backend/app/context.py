from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Caller identity resolved from the inbound request."""

    organization_id: str
    tenant_id: str
    user_id: str
