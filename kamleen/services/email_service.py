"""
Outbound email.

SMTP settings are read from the database on every send so an admin's change
takes effect immediately; nothing is cached between sends.
"""
import logging
import re
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Dict, Iterable, Optional, Tuple

import aiosmtplib
from sqlalchemy.orm import Session

from kamleen.core.crypto import MASKED, seal, unseal
from kamleen.core.exceptions import ConflictError, EmailDeliveryError, NotFoundError
from kamleen.database.models import EmailSettings, EmailTemplate

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


@dataclass
class RenderedTemplate:
    subject: str
    html: Optional[str]
    text: Optional[str]


@dataclass
class Attachment:
    filename: str
    content: bytes
    maintype: str = "application"
    subtype: str = "pdf"


def interpolate(source: Optional[str], variables: Dict[str, Any]) -> Optional[str]:
    if source is None:
        return None
    return PLACEHOLDER.sub(lambda m: str(variables.get(m.group(1), "")), source)


def render_template(db: Session, key: str, variables: Dict[str, Any]) -> Optional[RenderedTemplate]:
    template = db.query(EmailTemplate).filter(EmailTemplate.key == key).first()
    if template is None:
        logger.warning("Email template '%s' not found", key)
        return None
    return RenderedTemplate(
        subject=interpolate(template.subject, variables),
        html=interpolate(template.html, variables),
        text=interpolate(template.text, variables),
    )


def _smtp_settings(db: Session) -> Optional[Tuple[EmailSettings, Optional[str]]]:
    row = get_email_settings(db)
    if row is None:
        return None
    password = unseal(row.smtp_pass) if row.smtp_pass else None
    return row, password


async def send_email(
    db: Session,
    to_email: str,
    subject: str,
    text: Optional[str] = None,
    html: Optional[str] = None,
    attachments: Iterable[Attachment] = (),
) -> Optional[Any]:
    resolved = _smtp_settings(db)
    if resolved is None:
        logger.warning("Email to %s skipped: SMTP settings not configured", to_email)
        return None
    smtp, password = resolved

    message = EmailMessage()
    sender = smtp.from_email
    message["From"] = f"{smtp.from_name} <{sender}>" if smtp.from_name else sender
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(text or re.sub(r"<[^>]+>", "", html or ""))
    if html:
        message.add_alternative(html, subtype="html")
    for attachment in attachments:
        message.add_attachment(
            attachment.content,
            maintype=attachment.maintype,
            subtype=attachment.subtype,
            filename=attachment.filename,
        )

    response = await aiosmtplib.send(
        message,
        hostname=smtp.smtp_host,
        port=smtp.smtp_port,
        use_tls=bool(smtp.secure),
        username=smtp.smtp_user or None,
        password=password,
    )
    logger.info("Email sent to %s: %s", to_email, response)
    return response


# ---------- admin configuration ----------
def get_email_settings(db: Session) -> Optional[EmailSettings]:
    return db.query(EmailSettings).order_by(EmailSettings.id.desc()).first()


def mask_email_settings(row: EmailSettings) -> Dict[str, Any]:
    return {
        "id": row.id,
        "smtp_host": row.smtp_host,
        "smtp_port": row.smtp_port,
        "smtp_user": row.smtp_user,
        "smtp_pass": MASKED if row.smtp_pass else None,
        "secure": bool(row.secure),
        "from_name": row.from_name,
        "from_email": row.from_email,
    }


def save_email_settings(db: Session, values: Dict[str, Any]) -> EmailSettings:
    """
    Upsert the single SMTP settings row. The password is sealed before it is
    stored; an omitted or masked password keeps the stored one.
    """
    values = dict(values)
    password = values.pop("smtp_pass", None)
    row = get_email_settings(db)
    if row is None:
        row = EmailSettings()
        db.add(row)
    for field, value in values.items():
        setattr(row, field, value)
    if password and password != MASKED:
        row.smtp_pass = seal(password)
    db.commit()
    db.refresh(row)
    logger.info("SMTP settings saved (host=%s, user=%s)", row.smtp_host, row.smtp_user)
    return row


def save_template(db: Session, key: str, subject: str, html: str, text: Optional[str] = None) -> EmailTemplate:
    template = db.query(EmailTemplate).filter(EmailTemplate.key == key).first()
    if template is None:
        template = EmailTemplate(key=key)
        db.add(template)
    template.subject = subject
    template.html = html
    template.text = text
    db.commit()
    db.refresh(template)
    return template


async def send_test_email(db: Session, key: str, to_email: str, name: str = "Tester") -> None:
    rendered = render_template(db, key, {"name": name})
    if rendered is None:
        raise NotFoundError(f"Email template '{key}' not found")
    if get_email_settings(db) is None:
        raise ConflictError("SMTP settings are not configured", code="email_not_configured")
    try:
        await send_email(
            db,
            to_email,
            rendered.subject or f"Test: {key}",
            text=rendered.text,
            html=rendered.html or "<p>No HTML</p>",
        )
    except (aiosmtplib.SMTPException, OSError) as e:
        logger.error("Test email '%s' to %s failed: %s", key, to_email, e)
        raise EmailDeliveryError(f"SMTP delivery failed: {e}") from e
