from fastapi import APIRouter, Depends
from vms.api.deps import get_mirror, get_store
from vms.core.store import RecordStore
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/health")
def health_check(store: RecordStore = Depends(get_store), mirror=Depends(get_mirror)):
    """Health check endpoint"""
    counts = {name: len(records) for name, records in store.snapshot().items()}
    return {
        "status": "healthy",
        "store": str(store.path) if store.path else "memory",
        "records": counts,
        "mirror": "connected" if mirror.enabled else "disabled",
        "service": "visitor-management",
    }
