from html import escape

from vms.core.config import Settings

QR_CID = "visitor-qr"


def qr_link(settings: Settings, visitor_id: str) -> str:
    return f"{settings.APP_BASE_URL}/qrcodes/{visitor_id}.png"


def event_email_subject(settings: Settings) -> str:
    return f"Your QR Code for {settings.EVENT_NAME}"


def event_email_text(settings: Settings, visitor: dict) -> str:
    return (
        f"Dear {visitor['name']},\n\n"
        f"Thank you for your registration for {settings.EVENT_NAME}!\n\n"
        f"Date: {settings.EVENT_DATE}\n"
        f"Venue: {settings.EVENT_VENUE}\n"
        f"Time: {settings.EVENT_TIME}\n\n"
        "Your QR code is attached to this email. Please show it at entry and at "
        "any stall within the event.\n"
        f"If the image does not load, open this link: {qr_link(settings, visitor['id'])}\n\n"
        "We look forward to seeing you there!"
    )


def event_email_html(settings: Settings, visitor: dict, qr_cid: str = QR_CID) -> str:
    artwork = ""
    if settings.ARTWORK_URL:
        url = escape(settings.ARTWORK_URL)
        artwork = f'<p>The artwork can be retrieved from the link shared: <a href="{url}">{url}</a></p>'

    return f"""
  <div style="font-family: Arial, sans-serif; line-height: 1.5; max-width: 640px; margin: 0 auto; color: #222;">
    <p>Dear {escape(visitor['name'])},</p>
    <p>Thank you for your registration for <strong>{escape(settings.EVENT_NAME)}</strong>!</p>
    <p>Please find your QR code below, which will be scanned upon entry.</p>

    <div style="border:1px solid #eee; padding:16px; border-radius:8px; margin:16px 0;">
      <p><strong>Date:</strong> {escape(settings.EVENT_DATE)}</p>
      <p><strong>Venue:</strong> {escape(settings.EVENT_VENUE)}</p>
      <p><strong>Time:</strong> {escape(settings.EVENT_TIME)}</p>
    </div>

    <div style="text-align:center; margin:20px 0;">
      <img src="cid:{qr_cid}" alt="Your QR Code" style="width:240px; height:240px;"/>
      <p style="font-size:12px; color:#555;">Please show this QR code at entry and at any stall within the event.</p>
      <p style="font-size:12px; color:#555;">If the image does not load, open this link to your QR: {escape(qr_link(settings, visitor['id']))}</p>
    </div>

    {artwork}

    <p>Please note these QR codes will also be scanned by the STALL HOSTS within the event.</p>
    <p>We look forward to seeing you there!</p>
    <p style="margin-top:24px; color:#555; font-size:12px;">If you did not register for this event, please ignore this email.</p>
  </div>
"""
