from fastapi import APIRouter, Depends
import logging

from vms.api.deps import get_checkin_engine
from vms.schemas import ErrorResponse, ScanRequest, ScanResponse, StallAuthRequest, StallAuthResponse
from vms.services.checkin import CheckInEngine

router = APIRouter()
logger = logging.getLogger(__name__)

ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}

@router.post("/stall-auth", response_model=StallAuthResponse, responses=ERRORS)
def stall_auth(body: StallAuthRequest, engine: CheckInEngine = Depends(get_checkin_engine)):
    """Validate stallId + accessCode before a stall host starts scanning"""
    stall = engine.authenticate_stall(body.stall_id, body.access_code)
    return {"ok": True, "stall": stall.public()}

@router.post("/scan", response_model=ScanResponse, responses=ERRORS)
def scan_visitor(body: ScanRequest, engine: CheckInEngine = Depends(get_checkin_engine)):
    """
    Check a visitor in at a stall.

    The first accepted scan locks the visitor to that stall. Re-scanning there
    is a harmless repeat; scanning anywhere else is refused with 403.
    """
    result = engine.scan(body.visitor_id, body.stall_id, body.access_code)
    return result.model_dump()
