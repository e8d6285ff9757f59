"""
MJML Email Templates
Transactional emails sent to clients about their appointment requests
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

# ClickInk brand colors - purple/slate
THEME = {
    "primary": "#9333ea",
    "primary_dark": "#7e22ce",
    "background": "#faf5ff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e9d5ff",
}


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
              background-color="{THEME['primary']}"
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
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 24px 0" />
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              © ClickInk. You're receiving this because you requested an appointment.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _appointment_details(date: str, time: str, description: str) -> str:
    return f"""
    <mj-text font-weight="600" padding="16px 0 4px 0">Details:</mj-text>
    <mj-text padding="0 0 0 20px">
      • Date: {escape(date)}<br/>
      • Time: {escape(time)}<br/>
      • Description: {escape(description)}
    </mj-text>
    """


def appointment_confirmed_template(
    client_name: str, artist_name: str, date: str, time: str, description: str
) -> str:
    content = f"""
    <mj-text>Hi {escape(client_name)},</mj-text>
    <mj-text>Your appointment with {escape(artist_name)} has been confirmed!</mj-text>
    {_appointment_details(date, time, description)}
    <mj-text padding="16px 0 0 0">We look forward to seeing you!</mj-text>
    """
    return get_base_template(
        title="Appointment Confirmed",
        preview_text=f"Your appointment with {escape(artist_name)} is confirmed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/appointments",
        cta_label="View Appointment",
    )


def appointment_rejected_template(
    client_name: str, artist_name: str, date: str, time: str, description: str
) -> str:
    content = f"""
    <mj-text>Hi {escape(client_name)},</mj-text>
    <mj-text>
      Unfortunately, {escape(artist_name)} is unable to accommodate your appointment request at this time.
    </mj-text>
    {_appointment_details(date, time, description)}
    <mj-text padding="16px 0 0 0">
      Please try booking another time or explore other artists on ClickInk.
    </mj-text>
    """
    return get_base_template(
        title="Appointment Status Update",
        preview_text="An update on your appointment request",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/search",
        cta_label="Find Artists",
    )
