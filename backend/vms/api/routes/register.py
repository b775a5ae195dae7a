from fastapi import APIRouter, Depends
import logging

from vms.api.deps import get_registration
from vms.core.errors import InternalError
from vms.schemas import ErrorResponse, RegisterRequest, RegisterResponse
from vms.services.registration import RegistrationWorkflow

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post(
    "/register",
    response_model=RegisterResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def register_visitor(
    body: RegisterRequest,
    workflow: RegistrationWorkflow = Depends(get_registration),
):
    """
    Register a visitor and email them their QR code.
    Succeeds whenever the visitor is stored, even if the email could not be sent.
    """
    try:
        result = workflow.register(body.name, body.email)
    except InternalError as e:
        logger.error(f"Register error: {e.message}", exc_info=True)
        raise InternalError("Failed to register")

    return result.model_dump(mode="json")
