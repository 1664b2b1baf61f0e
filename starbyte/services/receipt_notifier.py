"""
Receipt Notifier for Starbyte purchases.

Renders the "Your Starbyte Receipt" email and sends it through one of two
transactional transports:
- smtp:     authenticated SMTP submission (STARTTLS)
- sendgrid: SendGrid v3 API

Each call makes exactly one synchronous send attempt. There is no
idempotency: calling twice with the same order id sends two emails.
"""
import base64
import logging
import re
import smtplib
from dataclasses import dataclass, field
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Dict, Any, Optional, List, Iterable

from flask import render_template
from pydantic import ValidationError as PydanticValidationError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import (
    Mail,
    Email,
    To,
    Attachment,
    FileContent,
    FileName,
    FileType,
    Disposition,
    ContentId,
)

from ..schemas import ReceiptLineItem

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
RECEIPT_SUBJECT = 'Your Starbyte Receipt'
LOGO_CID = 'logo-starbyte-receipt'


@dataclass
class InlineImage:
    """An image embedded in the HTML body and referenced as cid:<content_id>."""
    content_id: str
    data: bytes
    filename: str = 'logo.png'
    subtype: str = 'png'


@dataclass
class OutboundEmail:
    """A rendered email ready for a transport."""
    to: str
    subject: str
    html: str
    text: str
    from_address: str
    from_name: str = 'Starbyte'
    inline_images: List[InlineImage] = field(default_factory=list)


class SmtpTransport:
    """Authenticated SMTP submission."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = '',
        password: str = '',
        use_tls: bool = True,
        timeout: float = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, email: OutboundEmail) -> EmailMessage:
        message = EmailMessage()
        message['Subject'] = email.subject
        message['From'] = formataddr((email.from_name, email.from_address))
        message['To'] = email.to
        message.set_content(email.text)
        message.add_alternative(email.html, subtype='html')

        html_part = message.get_payload()[-1]
        for image in email.inline_images:
            html_part.add_related(
                image.data,
                maintype='image',
                subtype=image.subtype,
                cid=f'<{image.content_id}>',
                filename=image.filename,
            )
        return message

    def send(self, email: OutboundEmail) -> None:
        message = self.build_message(email)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)


class SendGridTransport:
    """SendGrid v3 API transport."""

    def __init__(self, api_key: str):
        self.api_key = api_key

    def build_message(self, email: OutboundEmail) -> Mail:
        message = Mail(
            from_email=Email(email=email.from_address, name=email.from_name),
            to_emails=To(email=email.to),
            subject=email.subject,
            html_content=email.html,
            plain_text_content=email.text,
        )
        for image in email.inline_images:
            message.add_attachment(Attachment(
                FileContent(base64.b64encode(image.data).decode('ascii')),
                FileName(image.filename),
                FileType(f'image/{image.subtype}'),
                Disposition('inline'),
                ContentId(image.content_id),
            ))
        return message

    def send(self, email: OutboundEmail) -> None:
        if not self.api_key:
            raise RuntimeError('SendGrid API key not configured')
        response = SendGridAPIClient(self.api_key).send(self.build_message(email))
        if response.status_code >= 400:
            raise RuntimeError(f'SendGrid rejected message: {response.status_code}')


def transport_from_config(config) -> Any:
    """Build the transport named by EMAIL_TRANSPORT."""
    if config.get('EMAIL_TRANSPORT') == 'sendgrid':
        return SendGridTransport(config.get('SENDGRID_API_KEY', ''))
    return SmtpTransport(
        host=config.get('SMTP_HOST', 'smtp.gmail.com'),
        port=config.get('SMTP_PORT', 587),
        username=config.get('SMTP_USERNAME', ''),
        password=config.get('SMTP_PASSWORD', ''),
        use_tls=config.get('SMTP_USE_TLS', True),
        timeout=config.get('SMTP_TIMEOUT', 30),
    )


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_PATTERN.match(email))


def format_price(amount) -> str:
    return f'{amount} Stardust'


class ReceiptNotifier:
    """
    Sends purchase receipts.

    Usage:
        notifier = ReceiptNotifier.from_app(current_app)
        result = notifier.send_purchase_receipt(
            to='nova@example.com',
            order_id='r1',
            total=20,
            products=[{'title': 'Welcome pack', 'price': 20,
                       'reward_detail': {'code': 'WELCOME20'}}],
        )
        result  # {'success': True, 'message': 'Receipt email sent.'}
    """

    def __init__(
        self,
        transport,
        from_address: str,
        from_name: str = 'Starbyte',
        base_url: str = 'http://localhost:3000',
        brand_color: str = '#4f7cff',
        logo_path: Optional[str] = None,
        logo_url: Optional[str] = None,
    ):
        self.transport = transport
        self.from_address = from_address
        self.from_name = from_name
        self.base_url = base_url.rstrip('/')
        self.brand_color = brand_color
        self.logo_path = logo_path
        self.logo_url = logo_url or f'{self.base_url}/icons/icon512_maskable.png'

    @classmethod
    def from_app(cls, app, transport=None) -> 'ReceiptNotifier':
        config = app.config
        return cls(
            transport=transport or transport_from_config(config),
            from_address=config.get('MAIL_FROM_ADDRESS'),
            from_name=config.get('MAIL_FROM_NAME', 'Starbyte'),
            base_url=config.get('BASE_URL', 'http://localhost:3000'),
            brand_color=config.get('BRAND_COLOR', '#4f7cff'),
            logo_path=config.get('RECEIPT_LOGO_PATH'),
            logo_url=config.get('RECEIPT_LOGO_URL'),
        )

    def send_purchase_receipt(
        self,
        to: Optional[str],
        order_id: str,
        total: int,
        products: Iterable[Any],
        date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Render and send a purchase receipt.

        Args:
            to: Buyer email address
            order_id: Purchase receipt id
            total: Total price in Stardust
            products: Line items (ReceiptLineItem or mappings)
            date: Transaction date (defaults to now)

        Returns:
            Dict with success flag and message
        """
        if not to:
            return {'success': False, 'message': 'Email address is required'}
        if not is_valid_email(to):
            return {'success': False, 'message': 'Invalid email address format'}

        try:
            items = [
                item if isinstance(item, ReceiptLineItem) else ReceiptLineItem.model_validate(item)
                for item in products
            ]
        except PydanticValidationError:
            return {'success': False, 'message': 'Missing purchase details for receipt'}

        email = self.build_email(to, order_id or '', total, items, date or datetime.utcnow())

        try:
            self.transport.send(email)
        except Exception as e:
            logger.error(f"Receipt email for order {order_id} failed: {e}")
            return {'success': False, 'message': 'Failed to send receipt email.'}

        logger.info(f"Receipt email sent for order {order_id}")
        return {'success': True, 'message': 'Receipt email sent.'}

    def build_email(
        self,
        to: str,
        order_id: str,
        total: int,
        items: List[ReceiptLineItem],
        date: datetime,
    ) -> OutboundEmail:
        logo = self._load_logo()
        logo_src = f'cid:{LOGO_CID}' if logo else self.logo_url

        html = render_template(
            'emails/purchase_receipt.html',
            to=to,
            order_id=order_id,
            invoice_date=date.strftime('%Y-%m-%d'),
            total=format_price(total),
            items=items,
            format_price=format_price,
            logo_src=logo_src,
            base_url=self.base_url,
            brand=self.brand_color,
            year=datetime.utcnow().year,
        )

        return OutboundEmail(
            to=to,
            subject=RECEIPT_SUBJECT,
            html=html,
            text=self._plain_text(order_id, total, items),
            from_address=self.from_address,
            from_name=self.from_name,
            inline_images=[logo] if logo else [],
        )

    def _load_logo(self) -> Optional[InlineImage]:
        if not self.logo_path:
            return None
        try:
            data = Path(self.logo_path).read_bytes()
        except OSError:
            return None
        return InlineImage(content_id=LOGO_CID, data=data)

    def _plain_text(self, order_id: str, total: int, items: List[ReceiptLineItem]) -> str:
        lines = [f'Order ID: {order_id}', '']
        for item in items:
            lines.append(f'{item.title} - {format_price(item.price)}')
            detail = item.reward_detail
            if detail and detail.code:
                lines.append(f'  Code: {detail.code}')
            elif detail and detail.link:
                lines.append(f'  Link: {detail.link}')
        lines.extend(['', f'TOTAL: {format_price(total)}', '', 'The Starbyte Team'])
        return '\n'.join(lines)
