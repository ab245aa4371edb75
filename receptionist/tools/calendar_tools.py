"""Availability and booking tools backed by the calendar."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from receptionist.calendars.base import CalendarClient
from receptionist.config import Service
from receptionist.models import CustomerInfo, ToolResult
from receptionist.tools.base import Tool

LOGGER = logging.getLogger(__name__)


class CheckAvailabilityTool(Tool):
    """Reports whether the calendar is free over a time range."""

    name = "check_availability"
    description = "Check if the calendar is free for a specific time range."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "start_time": {
                "type": "string",
                "description": "ISO 8601 start time (e.g. 2024-05-21T10:00:00Z)",
            },
            "end_time": {"type": "string", "description": "ISO 8601 end time"},
        },
        "required": ["start_time", "end_time"],
    }

    def __init__(self, calendar: CalendarClient, calendar_id: str, timezone: str = "UTC") -> None:
        self._calendar = calendar
        self._calendar_id = calendar_id
        self._timezone = timezone

    async def run(self, **kwargs: Any) -> ToolResult:
        if not self._calendar_id:
            return ToolResult.failure("Error: calendar id is not configured")
        try:
            time_min = with_offset(kwargs["start_time"], self._timezone)
            time_max = with_offset(kwargs["end_time"], self._timezone)
            busy = await self._calendar.query_busy(time_min, time_max, self._calendar_id)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Availability query failed")
            return ToolResult.failure(f"Error checking availability: {exc}")

        if busy is None:
            return ToolResult.failure(f"Error: Calendar information not found for {self._calendar_id}")
        if busy:
            return ToolResult.success(f"Busy during these times: {json.dumps(busy)}")
        return ToolResult.success("Free")


class BookAppointmentTool(Tool):
    """Books a catalog service as a calendar event."""

    name = "book_appointment"
    description = "Book a salon appointment for a specific service."

    def __init__(
        self,
        calendar: CalendarClient,
        calendar_id: str,
        services: dict[str, Service],
        currency: str = "LKR",
        timezone: str = "UTC",
        booked_via: str = "Receptionist",
    ) -> None:
        self._calendar = calendar
        self._calendar_id = calendar_id
        self._services = services
        self._currency = currency
        self._timezone = timezone
        self._booked_via = booked_via
        self.parameters_schema: dict[str, Any] = {
            "type": "object",
            "properties": {
                "service_id": {
                    "type": "string",
                    "enum": list(services),
                    "description": "The ID of the service to book (e.g., haircut, beard_trim)",
                },
                "start_time": {"type": "string", "description": "ISO 8601 start time"},
                "guest_email": {"type": "string", "description": "Email of the guest (optional)"},
            },
            "required": ["service_id", "start_time"],
        }

    async def run(self, **kwargs: Any) -> ToolResult:
        service_id = kwargs["service_id"]
        service = self._services.get(service_id)
        if service is None:
            return ToolResult.failure(f"Error: Service '{service_id}' not found.")
        if not self._calendar_id:
            return ToolResult.failure("Error: calendar id is not configured")

        customer: CustomerInfo = kwargs.get("customer") or CustomerInfo(name="Customer", number="Unknown")
        try:
            start = datetime.fromisoformat(kwargs["start_time"])
            event = self.build_event(service, start, customer, kwargs.get("guest_email"))
            link = await self._calendar.insert_event(self._calendar_id, event)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Booking failed")
            return ToolResult.failure(f"Error booking appointment: {exc}")

        return ToolResult.success(
            f"Appointment booked for {service.name}!\n"
            f"Customer: {customer.name}\n"
            f"Price: {_format_price(service.price)} {self._currency}\n"
            f"View Event: {link}"
        )

    def build_event(
        self,
        service: Service,
        start: datetime,
        customer: CustomerInfo,
        guest_email: str | None = None,
    ) -> dict[str, Any]:
        """Calendar event body for ``service`` starting at ``start``."""

        end = start + timedelta(minutes=service.duration)
        description = "\n".join(
            [
                f"Service: {service.name}",
                f"Customer: {customer.name}",
                f"Phone: {customer.number}",
                f"Duration: {service.duration} mins",
                f"Price: {_format_price(service.price)} {self._currency}",
                f"Booked via {self._booked_via}.",
            ]
        )
        return {
            "summary": f"{service.name} - {customer.name}",
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": self._timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self._timezone},
            "attendees": [{"email": guest_email}] if guest_email else [],
        }


def _format_price(price: float) -> str:
    return f"{price:.0f}" if float(price).is_integer() else f"{price:.2f}"


def with_offset(value: str, timezone: str) -> str:
    """RFC 3339 form of ``value``, placing offset-less times in ``timezone``."""

    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo(timezone))
    return moment.isoformat()
