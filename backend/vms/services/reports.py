import csv
import io
from collections import defaultdict
from typing import List

from vms.core.errors import NotFoundError
from vms.core.store import RecordStore
from vms.models.records import STALLS, EmailStatus, parse_timestamp

CSV_HEADER = ["name", "email", "registered_at", "scanned_at"]
RECENT_VISITORS = 10


def _newest_first(visitors: List[dict]) -> List[dict]:
    return sorted(visitors, key=lambda v: parse_timestamp(v.get("registered_at")), reverse=True)


def list_stalls(store: RecordStore) -> List[dict]:
    return [{"id": s["id"], "name": s["name"]} for s in store.get(STALLS)]


def list_visitors(store: RecordStore) -> List[dict]:
    """Visitors with their scan count and the distinct stalls they were scanned at."""
    data = store.snapshot()
    scans_by_visitor = defaultdict(list)
    for scan in data["scans"]:
        scans_by_visitor[scan["visitor_id"]].append(scan)

    results = []
    for v in data["visitors"]:
        scans = scans_by_visitor.get(v["id"], [])
        stall_ids = list(dict.fromkeys(s["stall_id"] for s in scans))
        results.append({
            "id": v["id"],
            "name": v["name"],
            "email": v["email"],
            "registered_at": v["registered_at"],
            "email_status": v.get("email_status"),
            "scans_count": len(scans),
            "stalls": stall_ids,
        })
    return _newest_first(results)


def stats(store: RecordStore) -> dict:
    data = store.snapshot()
    visitors, scans = data["visitors"], data["scans"]

    stalls = []
    for stall in data["stalls"]:
        at_stall = [s for s in scans if s["stall_id"] == stall["id"]]
        stalls.append({
            "id": stall["id"],
            "name": stall["name"],
            "scans": len(at_stall),
            "unique_visitors": len({s["visitor_id"] for s in at_stall}),
        })

    recent = [
        {
            "id": v["id"],
            "name": v["name"],
            "email": v["email"],
            "registered_at": v["registered_at"],
            "email_status": v.get("email_status"),
        }
        for v in _newest_first(visitors)[:RECENT_VISITORS]
    ]

    return {
        "totalVisitors": len(visitors),
        "emailsSent": sum(1 for v in visitors if v.get("email_status") == EmailStatus.SENT.value),
        "totalScans": len(scans),
        "stalls": stalls,
        "recentVisitors": recent,
    }


def export_stall_csv(store: RecordStore, stall_id: str) -> str:
    """CSV of every visitor scanned at ``stall_id``, in scan order."""
    data = store.snapshot()
    if not any(s["id"] == stall_id for s in data["stalls"]):
        raise NotFoundError("Stall not found")

    visitors = {v["id"]: v for v in data["visitors"]}
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADER)

    for scan in data["scans"]:
        if scan["stall_id"] != stall_id:
            continue
        v = visitors.get(scan["visitor_id"], {})
        writer.writerow([
            v.get("name", ""),
            v.get("email", ""),
            v.get("registered_at", ""),
            scan.get("scanned_at", ""),
        ])
    return output.getvalue()
