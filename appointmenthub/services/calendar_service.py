"""
Google Calendar Service
Handles calendar event creation, updates, and deletion for appointments
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx

from ..config import (
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
)
from ..models import Appointment

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"

# Cached access token and its expiry
_access_token: Optional[str] = None
_access_token_expires_at: Optional[datetime] = None


@dataclass
class CalendarEvent:
    title: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    attendees: list[str] = field(default_factory=list)
    location: Optional[str] = None


def is_configured() -> bool:
    return bool(GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN)


async def get_valid_access_token() -> Optional[str]:
    """
    Get a valid access token, refreshing if necessary
    Returns None if refresh fails
    """
    global _access_token, _access_token_expires_at

    if _access_token and _access_token_expires_at and _access_token_expires_at > datetime.utcnow() + timedelta(minutes=5):
        return _access_token

    try:
        logger.info("🔄 Google Calendar token expired, refreshing...")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "refresh_token": GOOGLE_REFRESH_TOKEN,
                    "grant_type": "refresh_token",
                },
            )

        if response.status_code != 200:
            logger.error(f"❌ Token refresh failed: {response.text}")
            return None

        tokens = response.json()
        new_access_token = tokens.get("access_token")
        if not new_access_token:
            logger.error("❌ No access token in refresh response")
            return None

        _access_token = new_access_token
        _access_token_expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))
        logger.info("✅ Google Calendar token refreshed")
        return _access_token
    except Exception as e:
        logger.error(f"❌ Error refreshing Google Calendar token: {str(e)}")
        return None


def build_event_payload(event: CalendarEvent, with_reminders: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "summary": event.title,
        "description": event.description or "",
        "start": {"dateTime": event.start_time.isoformat(), "timeZone": "UTC"},
        "end": {"dateTime": event.end_time.isoformat(), "timeZone": "UTC"},
        "attendees": [{"email": email} for email in event.attendees],
    }
    if event.location:
        payload["location"] = event.location
    if with_reminders:
        payload["reminders"] = {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "popup", "minutes": 10},
            ],
        }
    return payload


def event_for_appointment(appointment: Appointment) -> CalendarEvent:
    """Calendar event describing an appointment, with client and provider as attendees"""
    service = appointment.service
    client = appointment.client
    provider = appointment.provider

    description = f"Appointment with {client.name} for {service.name}"
    if appointment.notes:
        description += f"\n\nNotes: {appointment.notes}"

    return CalendarEvent(
        title=f"{service.name} - {client.name}",
        description=description,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        attendees=[email for email in (client.email, provider.email) if email],
    )


async def create_appointment_event(event: CalendarEvent) -> Optional[str]:
    """
    Create a Google Calendar event
    Returns the Google Calendar event ID if successful, None otherwise
    """
    if not is_configured():
        logger.info("ℹ️ Google Calendar credentials not configured, skipping event creation")
        return None

    try:
        access_token = await get_valid_access_token()
        if not access_token:
            logger.error("❌ Failed to get valid access token")
            return None

        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/{GOOGLE_CALENDAR_ID}/events",
                headers={"Authorization": f"Bearer {access_token}"},
                json=build_event_payload(event, with_reminders=True),
            )

        if response.status_code not in [200, 201]:
            logger.error(f"❌ Failed to create calendar event: {response.text}")
            return None

        event_id = response.json().get("id")
        logger.info(f"✅ Google Calendar event created: {event_id}")
        return event_id
    except Exception as e:
        logger.error(f"❌ Error creating calendar event: {str(e)}")
        return None


async def update_appointment_event(event_id: str, event: CalendarEvent) -> bool:
    """
    Update an existing Google Calendar event
    Returns True if successful, False otherwise
    """
    if not is_configured():
        logger.info("ℹ️ Google Calendar credentials not configured, skipping event update")
        return False

    try:
        access_token = await get_valid_access_token()
        if not access_token:
            logger.error("❌ Failed to get valid access token")
            return False

        async with httpx.AsyncClient() as client:
            response = await client.put(
                f"{GOOGLE_CALENDAR_API}/calendars/{GOOGLE_CALENDAR_ID}/events/{event_id}",
                headers={"Authorization": f"Bearer {access_token}"},
                json=build_event_payload(event),
            )

        if response.status_code != 200:
            logger.error(f"❌ Failed to update calendar event: {response.text}")
            return False

        logger.info(f"✅ Google Calendar event updated: {event_id}")
        return True
    except Exception as e:
        logger.error(f"❌ Error updating calendar event: {str(e)}")
        return False


async def delete_appointment_event(event_id: str) -> bool:
    """
    Delete a Google Calendar event
    Returns True if successful, False otherwise
    """
    if not is_configured():
        logger.info("ℹ️ Google Calendar credentials not configured, skipping event deletion")
        return False

    try:
        access_token = await get_valid_access_token()
        if not access_token:
            logger.error("❌ Failed to get valid access token")
            return False

        async with httpx.AsyncClient() as client:
            response = await client.delete(
                f"{GOOGLE_CALENDAR_API}/calendars/{GOOGLE_CALENDAR_ID}/events/{event_id}",
                headers={"Authorization": f"Bearer {access_token}"},
            )

        if response.status_code not in [200, 204]:
            logger.error(f"❌ Failed to delete calendar event: {response.text}")
            return False

        logger.info(f"✅ Google Calendar event deleted: {event_id}")
        return True
    except Exception as e:
        logger.error(f"❌ Error deleting calendar event: {str(e)}")
        return False
