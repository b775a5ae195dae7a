from fastapi import APIRouter, Depends
from fastapi.responses import Response
from typing import List

from vms.api.deps import get_store
from vms.core.store import RecordStore
from vms.schemas import ErrorResponse, StallPublic, StatsResponse, VisitorSummary
from vms.services import reports

router = APIRouter()

@router.get("/stalls", response_model=List[StallPublic])
def get_stalls(store: RecordStore = Depends(get_store)):
    return reports.list_stalls(store)

@router.get("/visitors", response_model=List[VisitorSummary])
def get_visitors(store: RecordStore = Depends(get_store)):
    """All registered visitors, newest first, with their scan counts"""
    return reports.list_visitors(store)

@router.get("/stats", response_model=StatsResponse)
def get_stats(store: RecordStore = Depends(get_store)):
    return reports.stats(store)

@router.get(
    "/export/stall/{stall_id}",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}, 404: {"model": ErrorResponse}},
)
def export_stall(stall_id: str, store: RecordStore = Depends(get_store)):
    """Download the visitors scanned at a stall as CSV"""
    csv_text = reports.export_stall_csv(store, stall_id)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{stall_id}-visitors.csv"'},
    )
