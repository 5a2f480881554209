"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    appointment_cancellation_template,
    appointment_confirmation_template,
    payment_confirmation_template,
    payment_failure_template,
)
from .models import Appointment

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dot-accessible result carrying html and errors
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        return result.html
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    text_content: Optional[str] = None,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        text_content: Optional plain-text alternative
        from_address: Optional custom from address

    Returns:
        Send response dict (contains the message id)
    """
    html_content = compile_mjml_to_html(mjml_content)

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        email_data = {
            "from": sender,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            email_data["text"] = text_content

        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


# ============================================
# Appointment emails
# ============================================


def _tenant_name(appointment: Appointment) -> str:
    tenant = appointment.tenant
    if tenant and tenant.settings and tenant.settings.business_name:
        return tenant.settings.business_name
    return tenant.name if tenant else "AppointmentHub"


async def send_appointment_confirmation(appointment: Appointment) -> dict:
    """Send booking confirmation to the appointment's client"""
    client = appointment.client
    service_name = appointment.service.name
    mjml_content = appointment_confirmation_template(
        client_name=client.name,
        tenant_name=_tenant_name(appointment),
        service_name=service_name,
        provider_name=appointment.provider.name,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
    )
    return await send_email(
        to=client.email,
        subject=f"Appointment Confirmation - {service_name}",
        mjml_content=mjml_content,
    )


async def send_appointment_cancellation(
    appointment: Appointment,
    refund_amount: Optional[float] = None,
    refund_status: Optional[str] = None,
) -> dict:
    """Send cancellation notice, including refund details when a refund was issued"""
    client = appointment.client
    service_name = appointment.service.name
    mjml_content = appointment_cancellation_template(
        client_name=client.name,
        tenant_name=_tenant_name(appointment),
        service_name=service_name,
        provider_name=appointment.provider.name,
        start_time=appointment.start_time,
        refund_amount=refund_amount,
        refund_status=refund_status,
    )
    return await send_email(
        to=client.email,
        subject=f"Appointment Cancelled - {service_name}",
        mjml_content=mjml_content,
    )


async def send_payment_confirmation(appointment: Appointment) -> dict:
    client = appointment.client
    service_name = appointment.service.name
    mjml_content = payment_confirmation_template(
        client_name=client.name,
        tenant_name=_tenant_name(appointment),
        service_name=service_name,
        provider_name=appointment.provider.name,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        payment_amount=appointment.payment_amount or 0,
    )
    return await send_email(
        to=client.email,
        subject=f"Payment Confirmed - {service_name}",
        mjml_content=mjml_content,
    )


async def send_payment_failure(appointment: Appointment) -> dict:
    client = appointment.client
    service_name = appointment.service.name
    mjml_content = payment_failure_template(
        client_name=client.name,
        tenant_name=_tenant_name(appointment),
        service_name=service_name,
        provider_name=appointment.provider.name,
        start_time=appointment.start_time,
        payment_amount=appointment.payment_amount or 0,
    )
    return await send_email(
        to=client.email,
        subject=f"Payment Failed - {service_name}",
        mjml_content=mjml_content,
    )
