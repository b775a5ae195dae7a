import hmac
import uuid

def generate_record_id() -> str:
    """Generate an opaque unique identifier for visitors and scans"""
    return str(uuid.uuid4())

def secrets_match(provided: str, expected: str) -> bool:
    """Constant-time comparison of a submitted secret against the stored one"""
    if provided is None or expected is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
