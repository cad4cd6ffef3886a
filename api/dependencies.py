"""Route dependencies shared by all routers."""

import logging

from fastapi import HTTPException, Request

from api.base import ErrorCodes
from utils.request_context import RequestContext

logger = logging.getLogger(__name__)


class MembershipRequired(HTTPException):
    """Authenticated user has no membership in the token's organization."""

    def __init__(self):
        super().__init__(status_code=403, detail="You are not a member of this organization")
        self.code = ErrorCodes.NOT_A_MEMBER


def get_request_context(request: Request) -> RequestContext:
    """
    Build the caller's RequestContext.

    Requires AuthMiddleware to have set request.state.principal. The role is
    read from the membership row on every request.
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    organization_service = request.app.state.services["organization"]
    membership = organization_service.get_membership(principal.user_id, principal.organization_id)
    if membership is None:
        logger.warning(
            "User %s has no membership in organization %s",
            principal.user_id, principal.organization_id,
        )
        raise MembershipRequired()

    return RequestContext(
        user_id=principal.user_id,
        organization_id=principal.organization_id,
        role=membership.role,
    )
