"""Shared validation utilities"""

import re
from datetime import datetime, time, timezone
from typing import Optional

SLUG_PATTERN = re.compile(r"^[a-z0-9\-]+$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

RESERVED_SLUGS = {
    "www",
    "api",
    "admin",
    "app",
    "mail",
    "ftp",
    "blog",
    "shop",
    "help",
    "support",
    "docs",
    "status",
    "dashboard",
    "login",
    "signup",
    "register",
    "auth",
    "account",
    "billing",
    "settings",
}


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")

    return email


def slug_problem(slug: str) -> Optional[str]:
    """Human readable reason a tenant slug cannot be used, or None when the format is fine"""
    if len(slug) < 3 or len(slug) > 30:
        return "Slug must be between 3 and 30 characters"
    if not SLUG_PATTERN.match(slug):
        return "Slug can only contain lowercase letters, numbers, and hyphens"
    if slug in RESERVED_SLUGS:
        return "This subdomain is reserved"
    return None


def validate_slug(slug: str) -> str:
    """
    Validate tenant slug format (3-30 chars of a-z, 0-9 and hyphens).

    Raises:
        ValueError: If the slug format is invalid
    """
    if not slug:
        raise ValueError("Slug is required")
    if len(slug) < 3 or len(slug) > 30 or not SLUG_PATTERN.match(slug):
        raise ValueError("Invalid subdomain format")
    return slug


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" (24h) into a time"""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError("Time must be in HH:MM format")
    return time(int(match.group(1)), int(match.group(2)))


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store and compare datetimes as naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
