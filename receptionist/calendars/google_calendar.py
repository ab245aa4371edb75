"""Google Calendar implementation of CalendarClient."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from google.oauth2 import service_account
from googleapiclient.discovery import build

from receptionist.calendars.base import CalendarClient

LOGGER = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


class GoogleCalendarClient(CalendarClient):
    """Calendar API v3 client authenticated with a service-account key file."""

    def __init__(self, credentials_path: Path) -> None:
        self._credentials_path = credentials_path
        self._service: Any = None

    def _get_service(self) -> Any:
        if self._service is None:
            credentials = service_account.Credentials.from_service_account_file(
                str(self._credentials_path), scopes=SCOPES
            )
            self._service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    async def query_busy(self, time_min: str, time_max: str, calendar_id: str) -> list[dict[str, Any]] | None:
        body = {"timeMin": time_min, "timeMax": time_max, "items": [{"id": calendar_id}]}
        data = await asyncio.to_thread(lambda: self._get_service().freebusy().query(body=body).execute())
        calendar = (data.get("calendars") or {}).get(calendar_id)
        if calendar is None:
            LOGGER.error("Free/busy response has no data for %s: %r", calendar_id, data)
            return None
        return list(calendar.get("busy") or [])

    async def insert_event(self, calendar_id: str, event: dict[str, Any]) -> str:
        created = await asyncio.to_thread(
            lambda: self._get_service().events().insert(calendarId=calendar_id, body=event).execute()
        )
        LOGGER.info("Created calendar event %s", created.get("id"))
        return str(created.get("htmlLink", ""))
