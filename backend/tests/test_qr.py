import io

from PIL import Image

from vms.utils.qr import CredentialIssuer, credential_payload, render_qr_png, visitor_id_from_payload


def test_payload_round_trip_through_badge_text():
    assert credential_payload("abc") == "VMS:abc"
    assert visitor_id_from_payload("VMS:abc") == "abc"
    assert visitor_id_from_payload(" abc ") == "abc"
    assert visitor_id_from_payload(None) is None


def test_rendered_png_has_requested_size():
    image = Image.open(io.BytesIO(render_qr_png("VMS:abc", size=600)))
    assert image.format == "PNG"
    assert image.size == (600, 600)


def test_issue_stores_artifact_by_visitor_id(tmp_path):
    issuer = CredentialIssuer(tmp_path / "qrcodes", size=200)

    first = issuer.issue()
    second = issuer.issue()

    assert first.visitor_id != second.visitor_id
    assert first.payload == f"VMS:{first.visitor_id}"
    assert (tmp_path / "qrcodes" / f"{first.visitor_id}.png").read_bytes() == first.png
