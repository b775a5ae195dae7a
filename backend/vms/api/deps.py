from fastapi import Request

from vms.core.store import RecordStore
from vms.services.checkin import CheckInEngine
from vms.services.registration import RegistrationWorkflow

def get_store(request: Request) -> RecordStore:
    """Dependency for the process-wide record store"""
    return request.app.state.store

def get_mirror(request: Request):
    return request.app.state.mirror

def get_checkin_engine(request: Request) -> CheckInEngine:
    return request.app.state.checkin

def get_registration(request: Request) -> RegistrationWorkflow:
    return request.app.state.registration
