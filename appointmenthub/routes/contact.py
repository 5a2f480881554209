"""
Contact Form Routes
Public contact form that routes inquiries to the right team and acknowledges the sender
"""

import logging
import random
import string
import time
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr, Field

from ..email_service import send_email
from ..email_templates import contact_customer_template, contact_internal_template
from ..rate_limiter import create_rate_limiter, get_client_ip
from ..utils.sanitization import sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["Contact"])

rate_limit_contact = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="contact_form")

DEFAULT_RECIPIENT = "info@appointmenthub.com"

INQUIRY_RECIPIENTS = {
    "sales": "sales@appointmenthub.com",
    "support": "support@appointmenthub.com",
    "partnership": "partnerships@appointmenthub.com",
    "billing": "billing@appointmenthub.com",
    "demo": "sales@appointmenthub.com",
    "feedback": "feedback@appointmenthub.com",
    "general": DEFAULT_RECIPIENT,
    "other": DEFAULT_RECIPIENT,
}

INQUIRY_LABELS = {
    "general": "General Inquiry",
    "sales": "Sales & Pricing",
    "support": "Technical Support",
    "partnership": "Partnership Opportunities",
    "demo": "Request Demo",
    "feedback": "Feedback & Suggestions",
    "billing": "Billing & Account",
    "other": "Other",
}

InquiryType = Literal["general", "sales", "support", "partnership", "demo", "feedback", "billing", "other"]


class ContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    company: Optional[str] = None
    inquiryType: InquiryType
    subject: str = Field(min_length=1, max_length=300)
    message: str = Field(min_length=10, max_length=10000)
    preferredContact: Literal["email", "phone", "both"] = "email"


def get_recipient_email(inquiry_type: str) -> str:
    return INQUIRY_RECIPIENTS.get(inquiry_type, DEFAULT_RECIPIENT)


def get_inquiry_label(inquiry_type: str) -> str:
    return INQUIRY_LABELS.get(inquiry_type, "General Inquiry")


def generate_reference_number() -> str:
    """REF-<epoch millis>-<9 uppercase alphanumerics>"""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=9))
    return f"REF-{int(time.time() * 1000)}-{suffix}"


def internal_text_body(data: ContactRequest, reference_number: str) -> str:
    lines = [
        f"New Contact Form Submission [{reference_number}]",
        "",
        f"Name: {data.name}",
        f"Email: {data.email}",
    ]
    if data.phone:
        lines.append(f"Phone: {data.phone}")
    if data.company:
        lines.append(f"Company: {data.company}")
    lines += [
        f"Inquiry Type: {get_inquiry_label(data.inquiryType)}",
        f"Preferred Contact: {data.preferredContact}",
        "",
        f"Subject: {data.subject}",
        "",
        "Message:",
        data.message,
    ]
    return "\n".join(lines)


def customer_text_body(data: ContactRequest, reference_number: str) -> str:
    return (
        "Thank you for contacting AppointmentHub!\n\n"
        f"Dear {data.name},\n\n"
        f"We've received your inquiry and assigned it reference number {reference_number}.\n\n"
        f"Inquiry Type: {get_inquiry_label(data.inquiryType)}\n"
        f"Subject: {data.subject}\n"
        f"Preferred Contact: {data.preferredContact}\n\n"
        "We'll respond within 24 hours during business days.\n\n"
        "Best regards,\nThe AppointmentHub Team"
    )


@router.post("")
async def submit_contact_form(
    data: ContactRequest,
    request: Request,
    _: None = Depends(rate_limit_contact),
):
    """Send the inquiry to the internal inbox for its type and a receipt to the sender"""
    reference_number = generate_reference_number()
    inquiry_label = get_inquiry_label(data.inquiryType)
    recipient = get_recipient_email(data.inquiryType)
    client_ip = get_client_ip(request)

    # HTML-escaped copies for the MJML bodies; text bodies keep the raw input
    name = sanitize_string(data.name)
    subject = sanitize_string(data.subject)

    internal_mjml = contact_internal_template(
        reference_number=reference_number,
        inquiry_label=inquiry_label,
        name=name,
        email=sanitize_string(data.email),
        phone=sanitize_string(data.phone),
        company=sanitize_string(data.company),
        preferred_contact=data.preferredContact,
        subject=subject,
        message=sanitize_string(data.message),
        client_ip=sanitize_string(client_ip),
        submitted_at=datetime.utcnow().isoformat(),
    )
    customer_mjml = contact_customer_template(
        name=name,
        reference_number=reference_number,
        inquiry_label=inquiry_label,
        subject=subject,
        preferred_contact=data.preferredContact,
    )

    try:
        await send_email(
            to=recipient,
            subject=f"New Contact Form Submission: {data.subject} [{reference_number}]",
            mjml_content=internal_mjml,
            text_content=internal_text_body(data, reference_number),
        )
        await send_email(
            to=data.email,
            subject=f"Thank you for contacting AppointmentHub [{reference_number}]",
            mjml_content=customer_mjml,
            text_content=customer_text_body(data, reference_number),
        )
    except Exception as e:
        logger.error(f"❌ Contact form {reference_number} could not be delivered: {e}")
        raise HTTPException(
            status_code=500, detail="Failed to send message. Please try again later."
        ) from e

    logger.info(f"📨 Contact form {reference_number} routed to {recipient}")
    return {
        "success": True,
        "message": "Message sent successfully",
        "referenceNumber": reference_number,
    }
