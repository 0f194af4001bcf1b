"""
Email delivery via Resend
Templates are MJML (see email_templates.py) compiled to HTML before sending.
"""

import logging
from datetime import date
from typing import Optional, Union

import resend
from mjml import mjml2html as mjml_to_html

from .config import ADMIN_NOTIFICATION_EMAIL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    booking_confirmation_template,
    cleaner_assignment_template,
    cleaner_weekly_schedule_template,
    cleaning_reminder_template,
    new_lead_notification_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailError(Exception):
    """Raised when an email cannot be compiled or delivered"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:  # mjml raises assorted parser errors
        logger.error(f"MJML compilation error: {e}")
        raise EmailError(f"Failed to compile MJML template: {e}") from e

    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


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
    except Exception as e:  # resend surfaces HTTP and validation errors with its own types
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailError(f"Failed to send email: {e}") from e

    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return response


def format_long_date(value: Optional[date]) -> str:
    """e.g. 'Tuesday, March 4, 2025'"""
    if not value:
        return "To be scheduled"
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"


# ============================================
# Pre-built notifications
# ============================================


async def send_cleaner_assignment_email(
    to: str,
    cleaner_name: str,
    customer_name: str,
    address: str,
    scheduled_date: Optional[date],
    time_slot: str,
    home_summary: str,
    instructions: Optional[str] = None,
) -> dict:
    formatted_date = format_long_date(scheduled_date)
    mjml_content = cleaner_assignment_template(
        cleaner_name, customer_name, address, formatted_date, time_slot, home_summary, instructions
    )
    return await send_email(
        to=to,
        subject=f"New Cleaning Assignment - {formatted_date}",
        mjml_content=mjml_content,
        from_address="Willow & Water <assignments@willowandwater.com>",
    )


async def send_booking_confirmation_email(
    to: str,
    customer_name: str,
    scheduled_date: Optional[date],
    time_slot: str,
    frequency_label: str,
    deposit_amount: str,
    remaining_amount: str,
) -> dict:
    mjml_content = booking_confirmation_template(
        customer_name,
        format_long_date(scheduled_date),
        time_slot,
        frequency_label,
        deposit_amount,
        remaining_amount,
    )
    return await send_email(to=to, subject="Your cleaning is confirmed", mjml_content=mjml_content)


async def send_cleaning_reminder_email(
    to: str, customer_name: str, scheduled_date: date, time_slot: str
) -> dict:
    formatted_date = format_long_date(scheduled_date)
    mjml_content = cleaning_reminder_template(customer_name, formatted_date, time_slot)
    return await send_email(
        to=to, subject="Reminder: your cleaning is tomorrow", mjml_content=mjml_content
    )


async def send_cleaner_weekly_schedule_email(
    to: str, cleaner_name: str, week_label: str, jobs: list[dict]
) -> dict:
    mjml_content = cleaner_weekly_schedule_template(cleaner_name, week_label, jobs)
    return await send_email(
        to=to, subject=f"Your schedule for {week_label}", mjml_content=mjml_content
    )


async def send_new_lead_notification(
    name: str, email: str, phone: str, address: str, home_summary: str, quote: str
) -> Optional[dict]:
    """Notify the owner about a new funnel lead (skipped when no address is configured)"""
    if not ADMIN_NOTIFICATION_EMAIL:
        return None
    mjml_content = new_lead_notification_template(name, email, phone, address, home_summary, quote)
    return await send_email(
        to=ADMIN_NOTIFICATION_EMAIL, subject=f"New lead: {name}", mjml_content=mjml_content
    )


async def deliver_in_background(send_fn, *args, **kwargs) -> bool:
    """Run a send_* helper from a background task; failures are logged, not raised."""
    try:
        await send_fn(*args, **kwargs)
        return True
    except EmailError as e:
        logger.warning(f"⚠️ Notification {send_fn.__name__} not delivered: {e}")
        return False
