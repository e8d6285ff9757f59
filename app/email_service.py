"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import appointment_confirmed_template, appointment_rejected_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a mapping with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailError(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailError(f"Failed to send email: {str(e)}") from e


async def send_appointment_status_email(
    status: str,
    to: str,
    client_name: str,
    artist_name: str,
    date: str,
    time: str,
    description: str,
) -> bool:
    """
    Tell the client their request was confirmed or rejected.

    Failures are logged and reported through the return value; the status
    change that triggered the email has already been committed.
    """
    if status == "confirmed":
        subject = "Your ClickInk Appointment is Confirmed!"
        template = appointment_confirmed_template
    elif status == "rejected":
        subject = "ClickInk Appointment Update"
        template = appointment_rejected_template
    else:
        logger.debug(f"No email for appointment status '{status}'")
        return False

    try:
        await send_email(
            to=to,
            subject=subject,
            mjml_content=template(client_name, artist_name, date, time, description),
        )
        return True
    except EmailError as e:
        logger.error(f"❌ Failed to send {status} appointment email to {to}: {e}")
        return False
