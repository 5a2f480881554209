"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from datetime import datetime
from typing import Optional

# App theme colors
THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1d4ed8",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#ef4444",
    "info_bg": "#e0f2fe",
    "warning_bg": "#fef3c7",
}

SUPPORT_PHONE = "+1 (555) 123-4567"


def format_appointment_time(value: datetime) -> str:
    """Human readable date and time, e.g. 'Monday, January 06, 2025 at 10:00 AM'"""
    return value.strftime("%A, %B %d, %Y at %I:%M %p")


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    footer_text: str = "This is an automated message, please do not reply to this email.",
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

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              {footer_text}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_block(heading: str, rows: list[tuple[str, str]], background: str) -> str:
    lines = "".join(f"<strong>{label}:</strong> {value}<br/>" for label, value in rows)
    return f"""
    <mj-text container-background-color="{background}" padding="16px" font-size="15px">
      <strong style="color: {THEME['text_primary']};">{heading}</strong><br/>
      {lines}
    </mj-text>
    """


def appointment_confirmation_template(
    client_name: str,
    tenant_name: str,
    service_name: str,
    provider_name: str,
    start_time: datetime,
    end_time: datetime,
) -> str:
    """Appointment booked/confirmed email for the client"""
    duration = round((end_time - start_time).total_seconds() / 60)
    details = _details_block(
        "Appointment Details",
        [
            ("Service", service_name),
            ("Provider", provider_name),
            ("Date &amp; Time", format_appointment_time(start_time)),
            ("Duration", f"{duration} minutes"),
        ],
        THEME["primary_light"],
    )
    content = f"""
    <mj-text>
      Dear {client_name},
    </mj-text>

    <mj-text>
      Your appointment has been successfully booked with <strong>{tenant_name}</strong>.
    </mj-text>

    {details}

    <mj-text>
      Please arrive 10 minutes early for your appointment. If you need to reschedule or cancel,
      please contact us as soon as possible.
    </mj-text>

    <mj-text color="{THEME['text_muted']}">
      Thank you for choosing {tenant_name}!
    </mj-text>
    """

    return get_base_template(
        title="Appointment Confirmed!",
        preview_text=f"Appointment Confirmation - {service_name}",
        content_sections=content,
    )


def appointment_cancellation_template(
    client_name: str,
    tenant_name: str,
    service_name: str,
    provider_name: str,
    start_time: datetime,
    refund_amount: Optional[float] = None,
    refund_status: Optional[str] = None,
) -> str:
    """Cancellation email, with a refund section when money is being returned"""
    details = _details_block(
        "Cancelled Appointment Details",
        [
            ("Service", service_name),
            ("Provider", provider_name),
            ("Date &amp; Time", format_appointment_time(start_time)),
        ],
        THEME["background"],
    )

    refund_section = ""
    if refund_amount and refund_amount > 0:
        if refund_status == "full":
            status_label = "Full refund processed"
        elif refund_status == "partial":
            status_label = "Partial refund processed"
        else:
            status_label = "Refund processing"
        refund_section = _details_block(
            "Refund Information",
            [("Refund Amount", f"${refund_amount:.2f}"), ("Refund Status", status_label)],
            THEME["info_bg"],
        ) + f"""
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      <em>Please allow 3-5 business days for the refund to appear on your statement.</em>
    </mj-text>
    """

    content = f"""
    <mj-text>
      Dear {client_name},
    </mj-text>

    <mj-text>
      Your appointment with <strong>{tenant_name}</strong> has been cancelled.
    </mj-text>

    {details}
    {refund_section}

    <mj-text>
      If you would like to reschedule, please feel free to book a new appointment.
    </mj-text>
    """

    return get_base_template(
        title="Appointment Cancelled",
        preview_text=f"Appointment Cancelled - {service_name}",
        content_sections=content,
        footer_text="Thank you for your understanding. This is an automated message, please do not reply.",
    )


def payment_confirmation_template(
    client_name: str,
    tenant_name: str,
    service_name: str,
    provider_name: str,
    start_time: datetime,
    end_time: datetime,
    payment_amount: float,
) -> str:
    """Online payment succeeded"""
    details = _details_block(
        "Payment Details",
        [
            ("Service", service_name),
            ("Provider", provider_name),
            ("Date &amp; Time", format_appointment_time(start_time)),
            ("Ends", end_time.strftime("%I:%M %p")),
            ("Amount Paid", f"${payment_amount:.2f}"),
        ],
        THEME["primary_light"],
    )
    content = f"""
    <mj-text>
      Dear {client_name},
    </mj-text>

    <mj-text>
      Your payment for the appointment with <strong>{tenant_name}</strong> was received
      and your booking is now confirmed.
    </mj-text>

    {details}

    <mj-text>
      Please arrive 10 minutes early for your appointment.
    </mj-text>
    """

    return get_base_template(
        title="Payment Confirmed ✓",
        preview_text=f"Payment Confirmed - {service_name}",
        content_sections=content,
    )


def payment_failure_template(
    client_name: str,
    tenant_name: str,
    service_name: str,
    provider_name: str,
    start_time: datetime,
    payment_amount: float,
) -> str:
    """Online payment failed, booking stays pending"""
    details = _details_block(
        "Appointment Details",
        [
            ("Service", service_name),
            ("Provider", provider_name),
            ("Date &amp; Time", format_appointment_time(start_time)),
            ("Amount", f"${payment_amount:.2f}"),
        ],
        THEME["background"],
    )
    content = f"""
    <mj-text>
      Dear {client_name},
    </mj-text>

    <mj-text>
      Unfortunately, your payment for the appointment with <strong>{tenant_name}</strong>
      could not be processed.
    </mj-text>

    {details}

    <mj-text container-background-color="{THEME['warning_bg']}" padding="16px">
      <strong>Action Required:</strong> your appointment is currently pending payment.
      Please try again or contact us to complete your booking.
    </mj-text>
    """

    return get_base_template(
        title="Payment Failed",
        preview_text=f"Payment Failed - {service_name}",
        content_sections=content,
    )


def contact_internal_template(
    reference_number: str,
    inquiry_label: str,
    name: str,
    email: str,
    phone: Optional[str],
    company: Optional[str],
    preferred_contact: str,
    subject: str,
    message: str,
    client_ip: str,
    submitted_at: str,
) -> str:
    """Contact form submission routed to the internal team"""
    contact_rows = [("Name", name), ("Email", email)]
    if phone:
        contact_rows.append(("Phone", phone))
    if company:
        contact_rows.append(("Company", company))
    contact_rows.append(("Preferred Contact", preferred_contact))

    content = f"""
    <mj-text>
      <strong>Reference:</strong> {reference_number}<br/>
      <strong>Inquiry Type:</strong> {inquiry_label}
    </mj-text>

    {_details_block("Contact Information", contact_rows, THEME['background'])}

    <mj-text>
      <strong>Subject:</strong> {subject}
    </mj-text>

    <mj-text container-background-color="{THEME['background']}" padding="16px">
      {message.replace(chr(10), "<br/>")}
    </mj-text>

    <mj-text font-size="13px" color="{THEME['text_muted']}">
      Please respond within 24 hours during business days.<br/>
      Client IP: {client_ip}<br/>
      Timestamp: {submitted_at}
    </mj-text>
    """

    return get_base_template(
        title="New Contact Form Submission",
        preview_text=f"{inquiry_label}: {subject}",
        content_sections=content,
        footer_text="This message was sent through the AppointmentHub contact form.",
    )


def contact_customer_template(
    name: str,
    reference_number: str,
    inquiry_label: str,
    subject: str,
    preferred_contact: str,
) -> str:
    """Acknowledgement sent back to whoever filled in the contact form"""
    summary = _details_block(
        "Your Message Summary",
        [
            ("Inquiry Type", inquiry_label),
            ("Subject", subject),
            ("Reference Number", reference_number),
            ("Preferred Contact Method", preferred_contact),
        ],
        THEME["background"],
    )
    content = f"""
    <mj-text>
      Dear {name},
    </mj-text>

    <mj-text>
      Thank you for reaching out to AppointmentHub. We've received your inquiry and assigned it
      reference number <strong>{reference_number}</strong>.
    </mj-text>

    {summary}

    <mj-text>
      We'll review your inquiry and route it to the right team member. You can expect a response
      within 24 hours during business days. For urgent matters, please call us at {SUPPORT_PHONE}.
    </mj-text>

    <mj-text>
      Best regards,<br/>The AppointmentHub Team
    </mj-text>
    """

    return get_base_template(
        title="Thank you for contacting us!",
        preview_text=f"We received your message [{reference_number}]",
        content_sections=content,
    )
