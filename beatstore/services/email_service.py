"""
Transactional e-mail via the Resend HTTP API.

Bodies are rendered from Jinja2 templates under ``templates/email``.
"""
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Sequence

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from beatstore.config import settings
from beatstore.core.exceptions import ProviderConfigurationError, ProviderError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates" / "email"


def get_jinja_env() -> Environment:
    """Get configured Jinja2 environment."""
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["money"] = lambda value: f"${Decimal(value or 0):.2f}"
    env.filters["long_date"] = lambda value: value.strftime("%A, %B %d, %Y")
    return env


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes

    def to_payload(self) -> dict[str, str]:
        return {
            "filename": self.filename,
            "content": base64.b64encode(self.content).decode(),
        }


@dataclass(frozen=True)
class EmailLineItem:
    title: str
    license_name: str
    price: Decimal


class EmailService:
    """Sends e-mail through Resend."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        sender: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.api_url = api_url or settings.RESEND_API_URL
        self.sender = sender or settings.EMAIL_FROM
        self.transport = transport
        self.env = get_jinja_env()

    async def send(
        self,
        to: Sequence[str],
        subject: str,
        html: str,
        attachments: Sequence[EmailAttachment] = (),
        reply_to: str | None = None,
    ) -> dict[str, Any]:
        """Send one message; returns Resend's response body."""
        if not self.api_key:
            raise ProviderConfigurationError("RESEND_API_KEY is not configured")

        payload: dict[str, Any] = {
            "from": self.sender,
            "to": list(to),
            "subject": subject,
            "html": html,
        }
        if attachments:
            payload["attachments"] = [a.to_payload() for a in attachments]
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"Resend request failed: {e}", "Failed to send email") from e

        if response.status_code >= 400:
            raise ProviderError(f"Resend API error: {response.text}", "Failed to send email")
        return response.json()

    async def send_order_confirmation(
        self,
        *,
        to: str,
        customer_name: str | None,
        order_id: str,
        items: Sequence[EmailLineItem],
        total: Decimal,
        download_url: str,
        expires_at: datetime | None,
        attachments: Sequence[EmailAttachment] = (),
        discount_code: str | None = None,
        discount_amount: Decimal | None = None,
        store_name: str | None = None,
    ) -> dict[str, Any]:
        html = self.env.get_template("order_confirmation.html").render(
            customer_name=customer_name,
            order_id=order_id,
            items=items,
            total=total,
            download_url=download_url,
            expires_at=expires_at,
            license_count=len(attachments),
            discount_code=discount_code,
            discount_amount=discount_amount,
            store_name=store_name or settings.STORE_BRAND_NAME,
            year=datetime.now(timezone.utc).year,
        )
        return await self.send(
            [to],
            "Order Confirmed - Your files are ready to download!",
            html,
            attachments=attachments,
        )

    async def send_offer_notification(
        self,
        *,
        offer_id: str,
        beat_title: str,
        customer_name: str,
        customer_email: str,
        offer_amount: Decimal,
        message: str | None,
        to: str | None = None,
    ) -> dict[str, Any]:
        html = self.env.get_template("offer_notification.html").render(
            offer_id=offer_id,
            beat_title=beat_title,
            customer_name=customer_name,
            customer_email=customer_email,
            offer_amount=offer_amount,
            message=message,
        )
        return await self.send(
            [to or settings.ADMIN_EMAIL],
            f"New exclusive offer for {beat_title}",
            html,
            reply_to=customer_email,
        )
