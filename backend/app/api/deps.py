"""Dependencies shared by the import routers."""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.context import RequestContext
from app.db import get_db
from app.models.tenant import Tenant


def get_request_context(
    x_organization_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> RequestContext:
    """Resolve organization, tenant and user for the caller.

    The organization and user come from headers set by the auth gateway in
    front of this service; the tenant is the one the user owns inside that
    organization.
    """
    if not x_organization_id or not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing organization or user context",
        )
    tenant = (
        db.query(Tenant)
        .filter(
            Tenant.organization_id == x_organization_id,
            Tenant.owner_user_id == x_user_id,
        )
        .first()
    )
    if not tenant:
        raise HTTPException(status_code=404, detail="No tenant found for user")
    return RequestContext(
        organization_id=x_organization_id, tenant_id=tenant.id, user_id=x_user_id
    )
