"""
PDF Ticket Generator with QR Code and Code128 barcode
One page per ticket, Sand, Terracotta & Ink theme
"""
import hashlib
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import qrcode  # type: ignore[import-untyped]
from reportlab.graphics.barcode import code128  # type: ignore[import-untyped]
from reportlab.lib import colors  # type: ignore[import-untyped]
from reportlab.lib.pagesizes import A4  # type: ignore[import-untyped]
from reportlab.lib.utils import ImageReader  # type: ignore[import-untyped]
from reportlab.pdfgen import canvas  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Color Theme
INK = "#1F2430"
SAND = "#F4EBDD"
TERRACOTTA = "#C0562F"
WHITE = "#FFFFFF"
MUTED = "#6B6F7A"


@dataclass
class TicketEntry:
    code: str
    seat_number: int


@dataclass
class TicketContext:
    booking_id: int
    experience_title: str
    session_start: datetime
    explorer_name: Optional[str]
    explorer_email: Optional[str]
    guests: int
    total_price: float
    currency: str
    location: Optional[str] = None
    meeting_address: Optional[str] = None
    organizer_name: Optional[str] = None


def generate_qr_image(data: dict) -> ImageReader:
    """
    QR code carrying the ticket payload plus a short checksum
    """
    checksum = hashlib.sha256(json.dumps(data, sort_keys=True).encode()).hexdigest()[:16]
    payload = {**data, "checksum": checksum}

    qr = qrcode.QRCode(version=1, box_size=10, border=2)
    qr.add_data(json.dumps(payload))
    qr.make(fit=True)
    img = qr.make_image(fill_color=INK, back_color=WHITE)

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return ImageReader(buffer)


def _draw_ticket(c: canvas.Canvas, entry: TicketEntry, ctx: TicketContext) -> None:
    width, height = A4

    # === BACKGROUND & BORDER ===
    c.setFillColor(colors.HexColor(SAND))
    c.rect(0, 0, width, height, fill=1, stroke=0)
    c.setStrokeColor(colors.HexColor(TERRACOTTA))
    c.setLineWidth(3)
    c.rect(15, 15, width - 30, height - 30, stroke=1, fill=0)

    # === HEADER ===
    header_height = 90
    c.setFillColor(colors.HexColor(INK))
    c.rect(20, height - header_height - 20, width - 40, header_height, fill=1, stroke=0)
    c.setFillColor(colors.HexColor(WHITE))
    c.setFont("Helvetica-Bold", 26)
    c.drawString(40, height - 65, "Kamleen")
    c.setFillColor(colors.HexColor(TERRACOTTA))
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, height - 88, "EXPERIENCE TICKET")

    c.setFillColor(colors.HexColor(WHITE))
    c.setFont("Helvetica-Bold", 14)
    c.drawRightString(width - 40, height - 60, f"#{ctx.booking_id}")
    c.setFont("Helvetica", 10)
    c.drawRightString(width - 40, height - 75, f"GUEST {entry.seat_number} OF {ctx.guests}")

    # === TITLE BAND ===
    y = height - 150
    c.setFillColor(colors.HexColor(TERRACOTTA))
    c.roundRect(30, y - 45, width - 60, 45, 10, fill=1, stroke=0)
    c.setFillColor(colors.HexColor(WHITE))
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(width / 2, y - 29, ctx.experience_title.upper()[:60])

    # === DETAILS ===
    y -= 80
    rows = [
        ("DATE", ctx.session_start.strftime("%A %d %B %Y, %H:%M")),
        ("MEETING POINT", ctx.meeting_address or ctx.location or "-"),
        ("HOST", ctx.organizer_name or "-"),
        ("EXPLORER", ctx.explorer_name or ctx.explorer_email or "-"),
        ("PAID", f"{ctx.total_price:.2f} {ctx.currency}"),
    ]
    for label, value in rows:
        c.setFillColor(colors.HexColor(MUTED))
        c.setFont("Helvetica-Bold", 10)
        c.drawString(40, y, label)
        c.setFillColor(colors.HexColor(INK))
        c.setFont("Helvetica", 13)
        c.drawString(160, y, str(value)[:70])
        y -= 26

    # === QR CODE ===
    qr_size = 170
    qr_image = generate_qr_image({
        "code": entry.code,
        "booking_id": ctx.booking_id,
        "seat": entry.seat_number,
    })
    c.drawImage(qr_image, (width - qr_size) / 2, y - qr_size - 20, width=qr_size, height=qr_size)
    y -= qr_size + 50

    # === BARCODE ===
    barcode = code128.Code128(entry.code, barHeight=40, barWidth=1.2)
    barcode.drawOn(c, (width - barcode.width) / 2, y - 40)
    c.setFillColor(colors.HexColor(INK))
    c.setFont("Courier-Bold", 12)
    c.drawCentredString(width / 2, y - 58, entry.code)

    # === FOOTER ===
    c.setFillColor(colors.HexColor(MUTED))
    c.setFont("Helvetica", 8)
    c.drawCentredString(width / 2, 30, "Present this ticket at the meeting point. One scan per guest.")


def render_tickets_pdf(entries: List[TicketEntry], ctx: TicketContext) -> bytes:
    """
    Render every ticket of a booking into a single PDF document

    Returns:
        The PDF as bytes
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"Tickets - booking {ctx.booking_id}")
    for entry in sorted(entries, key=lambda e: e.seat_number):
        _draw_ticket(c, entry, ctx)
        c.showPage()
    c.save()
    logger.info(f"✅ Rendered {len(entries)} ticket(s) for booking {ctx.booking_id}")
    return buffer.getvalue()
