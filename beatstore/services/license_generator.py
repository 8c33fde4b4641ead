"""
License agreement PDFs.

Each purchased item gets a one-page US Letter agreement rendered with
ReportLab and stored at ``licenses/generated/{order_id}/{order_item_id}.pdf``.
"""
import asyncio
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial

from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas

from beatstore.config import settings
from beatstore.integrations.storage import BaseStorageClient, BeatstorePaths, get_storage_client

logger = logging.getLogger(__name__)

SOUND_KIT_LICENSE_TYPE = "sound_kit"

ACCENT = Color(0.2, 0.1, 0.4)
MUTED = Color(0.5, 0.5, 0.5)
RULE = Color(0.8, 0.8, 0.8)


@dataclass(frozen=True)
class LicenseTerms:
    stream_limit: str
    radio_rights: bool
    video_rights: bool
    commercial_rights: bool
    exclusive_rights: bool
    keep_after_exclusive: bool
    description: str


LICENSE_TERMS = {
    "mp3": LicenseTerms(
        stream_limit="5,000 streams",
        radio_rights=False,
        video_rights=False,
        commercial_rights=False,
        exclusive_rights=False,
        keep_after_exclusive=False,
        description="MP3 Lease License - Non-exclusive rights for personal and promotional use",
    ),
    "wav": LicenseTerms(
        stream_limit="50,000 streams",
        radio_rights=True,
        video_rights=True,
        commercial_rights=False,
        exclusive_rights=False,
        keep_after_exclusive=False,
        description="WAV Lease License - Non-exclusive rights with radio and video broadcasting",
    ),
    "stems": LicenseTerms(
        stream_limit="500,000 streams",
        radio_rights=True,
        video_rights=True,
        commercial_rights=True,
        exclusive_rights=False,
        keep_after_exclusive=True,
        description="Trackout/Stems License - Full commercial rights with individual track files",
    ),
    "exclusive": LicenseTerms(
        stream_limit="Unlimited",
        radio_rights=True,
        video_rights=True,
        commercial_rights=True,
        exclusive_rights=True,
        keep_after_exclusive=True,
        description="Exclusive License - Full ownership and exclusive rights transfer",
    ),
}

DEFAULT_TERMS = LicenseTerms(
    stream_limit="5,000 streams",
    radio_rights=False,
    video_rights=False,
    commercial_rights=False,
    exclusive_rights=False,
    keep_after_exclusive=False,
    description="Standard Lease License",
)


def get_license_terms(license_type: str | None) -> LicenseTerms:
    return LICENSE_TERMS.get((license_type or "").lower(), DEFAULT_TERMS)


@dataclass(frozen=True)
class LicenseContext:
    """Everything printed on one license agreement."""

    order_id: str
    order_item_id: str
    item_type: str
    item_title: str
    license_name: str
    license_type: str
    customer_name: str | None
    customer_email: str
    purchase_date: datetime
    price: Decimal
    bpm: int | None = None
    genre: str | None = None
    producer_name: str | None = None


@dataclass(frozen=True)
class GeneratedLicense:
    order_item_id: str
    storage_key: str
    filename: str
    content: bytes


def render_license_pdf(ctx: LicenseContext) -> bytes:
    """Render the agreement and return the PDF bytes."""
    producer = ctx.producer_name or settings.STORE_BRAND_NAME
    terms = get_license_terms(ctx.license_type)
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=LETTER)
    pdf.setTitle(f"License - {ctx.item_title}")
    width, height = LETTER

    left, right = 50, width - 50
    line, gap = 18, 25
    y = height - 60

    def text(value: str, x: float = left + 20, size: int = 11, bold: bool = False, color: Color | None = None):
        pdf.setFont("Times-Bold" if bold else "Times-Roman", size)
        pdf.setFillColor(color or Color(0, 0, 0))
        pdf.drawString(x, y, value)

    def rule(at: float):
        pdf.setStrokeColor(RULE)
        pdf.setLineWidth(1)
        pdf.line(left, at, right, at)

    text("BEAT LICENSE AGREEMENT", x=left, size=20, bold=True, color=ACCENT)
    y -= 25
    text(terms.description, x=left, size=10, color=Color(0.4, 0.4, 0.4))
    y -= 20
    rule(y)
    y -= gap

    text('This License Agreement ("Agreement") is made effective as of:', x=left)
    y -= line
    text(ctx.purchase_date.strftime("%B %d, %Y").replace(" 0", " "), x=left, size=12, bold=True, color=ACCENT)
    y -= gap

    text("BETWEEN:", x=left, size=12, bold=True)
    y -= line
    text(f'Producer: {producer} ("Licensor")')
    y -= line
    text(f'Licensee: {ctx.customer_name or ctx.customer_email} ("Licensee")')
    y -= line
    text(f"Email: {ctx.customer_email}")
    y -= gap

    text("LICENSED WORK:", x=left, size=12, bold=True)
    y -= line
    text(f'Title: "{ctx.item_title}"', bold=True)
    if ctx.item_type == "beat" and ctx.bpm:
        y -= line
        text(f"BPM: {ctx.bpm} | Genre: {ctx.genre or 'N/A'}")
    y -= line
    text(f"License Type: {ctx.license_name}")
    y -= line
    text(f"Purchase Price: ${Decimal(ctx.price):.2f}")
    y -= line
    text(f"Order Reference: {ctx.order_id}", size=10, color=MUTED)
    y -= gap

    text("RIGHTS GRANTED:", x=left, size=12, bold=True)
    y -= line
    rights = [
        f"- Streaming Limit: {terms.stream_limit}",
        f"- Radio Broadcasting: {'Included' if terms.radio_rights else 'Not included'}",
        f"- Music Video Rights: {'Included' if terms.video_rights else 'Not included'}",
        f"- Commercial Use: {'Full commercial rights' if terms.commercial_rights else 'Non-commercial only'}",
        f"- Exclusivity: {'Exclusive rights - beat removed from sale' if terms.exclusive_rights else 'Non-exclusive license'}",
    ]
    for right_line in rights:
        text(right_line)
        y -= line
    y -= gap - line

    text("TERMS AND CONDITIONS:", x=left, size=12, bold=True)
    y -= line
    conditions = [
        f'1. Credit Requirement: The Licensee must credit the Producer as "prod. by {producer}"',
        "   in all works using this beat, unless explicitly waived in writing.",
        "",
        "2. Ownership: The Producer retains ownership of the underlying composition and",
        "   master recording. This license grants usage rights only.",
        "",
        "3. Transferability: This license is non-transferable and may not be resold,",
        "   sublicensed, or assigned to any third party.",
        "",
        "4. Modifications: The Licensee may modify the beat for their production but may",
        "   not distribute the beat instrumentally without vocals.",
        "",
        f"5. Stream Limits: Usage is limited to {terms.stream_limit} across all platforms.",
        "   Additional streams require a new license purchase.",
    ]
    for condition in conditions:
        if not condition:
            y -= 8
            continue
        text(condition, size=10)
        y -= line - 3

    y = 80
    rule(y + 20)
    text("This is an automatically generated license agreement.", x=left, size=9, color=MUTED)
    y -= 14
    generated_on = datetime.now(timezone.utc).date().isoformat()
    text(f"Generated on {generated_on} | Order: {ctx.order_id}", x=left, size=9, color=MUTED)
    y -= 14
    text(f"{producer} - All Rights Reserved", x=left, size=9, bold=True, color=ACCENT)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def license_filename(ctx: LicenseContext) -> str:
    safe_title = "".join(c if c.isalnum() else "_" for c in ctx.item_title)
    if ctx.item_type == "sound_kit":
        return f"License_{safe_title}.pdf"
    return f"License_{safe_title}_{ctx.license_type}.pdf"


class LicenseGenerator:
    """Renders license PDFs and stores them."""

    def __init__(self, storage: BaseStorageClient | None = None):
        self._storage = storage

    @property
    def storage(self) -> BaseStorageClient:
        if self._storage is None:
            self._storage = get_storage_client()
        return self._storage

    async def generate(self, ctx: LicenseContext) -> GeneratedLicense:
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(None, render_license_pdf, ctx)
        key = BeatstorePaths.generated_license(ctx.order_id, ctx.order_item_id)
        await loop.run_in_executor(
            None,
            partial(self.storage.put_object, key, content, "application/pdf"),
        )
        logger.info(f"License PDF stored at {key}")
        return GeneratedLicense(
            order_item_id=ctx.order_item_id,
            storage_key=key,
            filename=license_filename(ctx),
            content=content,
        )
