"""
Stations Module

Read interface over charging stations and their weekly schedules, plus the
hourly slot availability projection shown to owners before they book.
"""

from .schemas import StationInfo, TimeSlot, StationSlots

__all__ = ["StationInfo", "TimeSlot", "StationSlots"]
