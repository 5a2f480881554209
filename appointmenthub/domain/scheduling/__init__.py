"""
Scheduling Domain - date arithmetic shared by bookings, recurring templates and the waitlist

- recurrence.py: expands a recurrence rule into concrete start times
- availability.py: overlap checks and the public 30-minute slot grid
"""
