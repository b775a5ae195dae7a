import io
import logging
from pathlib import Path
from typing import Optional

import qrcode
from PIL import Image
from pydantic import BaseModel

from vms.core.errors import InternalError
from vms.utils.crypto import generate_record_id

logger = logging.getLogger(__name__)

QR_PREFIX = "VMS:"


class Credential(BaseModel):
    visitor_id: str
    payload: str
    path: str
    png: bytes


def credential_payload(visitor_id: str) -> str:
    return f"{QR_PREFIX}{visitor_id}"


def visitor_id_from_payload(value: Optional[str]) -> Optional[str]:
    """Accept either a bare visitor id or the raw ``VMS:<id>`` text read off a badge."""
    if value is None:
        return None
    value = value.strip()
    if value.startswith(QR_PREFIX):
        return value[len(QR_PREFIX):].strip()
    return value


def render_qr_png(payload: str, size: int = 600) -> bytes:
    """Render ``payload`` as a square PNG of ``size`` pixels"""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white").get_image()

    if image.width != size:
        image = image.convert("RGB").resize((size, size), Image.NEAREST)

    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


class CredentialIssuer:
    """Generates visitor ids and stores their QR artifacts under ``qr_dir``."""

    def __init__(self, qr_dir: Path, size: int = 600):
        self.qr_dir = Path(qr_dir)
        self.size = size

    def artifact_path(self, visitor_id: str) -> Path:
        return self.qr_dir / f"{visitor_id}.png"

    def issue(self) -> Credential:
        visitor_id = generate_record_id()
        payload = credential_payload(visitor_id)
        try:
            png = render_qr_png(payload, self.size)
            path = self.artifact_path(visitor_id)
            self.qr_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(png)
        except (OSError, ValueError) as e:
            logger.error(f"❌ QR generation failed for {visitor_id}: {e}", exc_info=True)
            raise InternalError("Failed to generate credential") from e

        return Credential(visitor_id=visitor_id, payload=payload, path=str(path), png=png)

    def discard(self, visitor_id: str):
        """Remove the artifact of a visitor that was never committed"""
        try:
            self.artifact_path(visitor_id).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"⚠️ Could not remove QR artifact for {visitor_id}: {e}")
