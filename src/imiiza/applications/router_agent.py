"""Agent endpoints: accepting unassigned applications."""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..auth.dependencies import require_roles
from ..auth.roles import UserRole
from ..dependencies import get_application_service
from ..models.user import User
from .schemas import AcceptApplicationRequest
from .service import ApplicationService


router = APIRouter(prefix="/api/agent", tags=["Agent"])


@router.post("/accept-application")
def accept_application(
    body: AcceptApplicationRequest,
    agent: Annotated[User, Depends(require_roles(UserRole.AGENT))],
    service: Annotated[ApplicationService, Depends(get_application_service)],
):
    """Assign an application to the calling agent.

    Raises:
        404: Application not found
        409: Application already accepted by an agent
    """
    application = service.accept_application(body.application_id, agent)
    return {
        "success": True,
        "message": "Application accepted successfully",
        "application": application.to_dict(),
        "projectCount": agent.project_count,
    }
