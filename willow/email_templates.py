"""
MJML Email Templates
Customer, cleaner and owner notifications, all wrapped in the shared base layout.
"""

from typing import Optional

from .config import FRONTEND_URL
from .utils.sanitization import sanitize_string

# Brand colors - sage/cream palette
THEME = {
    "primary": "#71797E",
    "primary_dark": "#36454F",
    "primary_light": "#E8EBE4",
    "background": "#F9F6EE",
    "card_bg": "#ffffff",
    "text_primary": "#36454F",
    "text_secondary": "#4b5563",
    "text_muted": "#6b7280",
    "border": "#e5e7eb",
}

BRAND_NAME = "Willow & Water"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary_dark']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Georgia, 'Times New Roman', serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary_dark']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" color="#ffffff" padding="0">
              {BRAND_NAME}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              {BRAND_NAME} · Eco-friendly home cleaning in the Fox Valley
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_rows(rows: list[tuple[str, str]]) -> str:
    cells = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']};">{label}</td>
          <td style="padding: 6px 0; text-align: right; color: {THEME['text_primary']};">{sanitize_string(value)}</td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table padding="0 0 24px 0" font-size="15px">
      {cells}
    </mj-table>
    """


def cleaner_assignment_template(
    cleaner_name: str,
    customer_name: str,
    address: str,
    formatted_date: str,
    time_slot: str,
    home_summary: str,
    instructions: Optional[str] = None,
) -> str:
    """New job assignment sent to a cleaner"""
    instructions_section = ""
    if instructions:
        escaped = sanitize_string(instructions).replace("\n", "<br/>")
        instructions_section = f"""
        <mj-text font-size="14px" color="{THEME['text_muted']}" padding="0 0 16px 0">
          {escaped}
        </mj-text>
        """

    details = _detail_rows(
        [
            ("Customer", customer_name),
            ("Date", formatted_date),
            ("Time", time_slot),
            ("Address", address),
            ("Home", home_summary),
        ]
    )
    first_name = sanitize_string(cleaner_name.split(" ")[0])

    content = f"""
    <mj-text>
      Hi {first_name},
    </mj-text>

    <mj-text>
      You've been assigned a new cleaning. Here are the details:
    </mj-text>

    {details}

    {instructions_section}
    """
    return get_base_template(
        title="New Cleaning Assignment",
        preview_text=f"New job on {formatted_date}",
        content_sections=content,
    )


def booking_confirmation_template(
    customer_name: str,
    formatted_date: str,
    time_slot: str,
    frequency_label: str,
    deposit_amount: str,
    remaining_amount: str,
) -> str:
    """Deposit received, booking confirmed"""
    details = _detail_rows(
        [
            ("Date", formatted_date),
            ("Time", time_slot),
            ("Plan", frequency_label),
            ("Deposit paid", deposit_amount),
            ("Due after cleaning", remaining_amount),
        ]
    )
    first_name = sanitize_string(customer_name.split(" ")[0])

    content = f"""
    <mj-text>
      Hi {first_name},
    </mj-text>

    <mj-text>
      Thank you! Your deposit has been received and your cleaning is confirmed.
    </mj-text>

    {details}

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Need to reschedule? Free changes up to 48 hours before your appointment.
    </mj-text>
    """
    return get_base_template(
        title="Your Cleaning is Confirmed",
        preview_text=f"See you on {formatted_date}",
        content_sections=content,
    )


def cleaning_reminder_template(customer_name: str, formatted_date: str, time_slot: str) -> str:
    """Day-before reminder to the customer"""
    first_name = sanitize_string(customer_name.split(" ")[0])
    content = f"""
    <mj-text>
      Hi {first_name},
    </mj-text>

    <mj-text>
      Quick reminder: your {BRAND_NAME} cleaning is tomorrow, {formatted_date} ({time_slot}).
      Your cleaner will text when they're on the way.
    </mj-text>
    """
    return get_base_template(
        title="Your Cleaning is Tomorrow",
        preview_text=f"Reminder: cleaning on {formatted_date}",
        content_sections=content,
    )


def cleaner_weekly_schedule_template(
    cleaner_name: str, week_label: str, jobs: list[dict]
) -> str:
    """Saturday summary of next week's jobs for a cleaner"""
    first_name = sanitize_string(cleaner_name.split(" ")[0])
    if jobs:
        rows = _detail_rows(
            [(f"{job['date']} · {job['time']}", f"{job['customer']}, {job['address']}") for job in jobs]
        )
    else:
        rows = f"""
        <mj-text color="{THEME['text_muted']}">
          No cleanings are scheduled for you next week yet.
        </mj-text>
        """

    content = f"""
    <mj-text>
      Hi {first_name},
    </mj-text>

    <mj-text>
      Here is your schedule for {week_label}:
    </mj-text>

    {rows}
    """
    return get_base_template(
        title="Your Schedule Next Week",
        preview_text=f"{len(jobs)} cleanings for {week_label}",
        content_sections=content,
    )


def new_lead_notification_template(
    name: str, email: str, phone: str, address: str, home_summary: str, quote: str
) -> str:
    """Owner notification when the quote funnel captures a lead"""
    details = _detail_rows(
        [
            ("Name", name),
            ("Email", email),
            ("Phone", phone or "-"),
            ("Address", address or "-"),
            ("Home", home_summary),
            ("Quote", quote),
        ]
    )

    content = f"""
    <mj-text>
      A new lead just came in from the website calculator.
    </mj-text>

    {details}
    """
    return get_base_template(
        title="New Lead",
        preview_text=f"New lead: {name}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin/leads",
        cta_label="View Leads",
    )
