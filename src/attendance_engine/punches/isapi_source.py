from __future__ import annotations

import logging
import time as _time
from datetime import datetime
from typing import Any, Optional, Sequence

import requests
from requests.auth import HTTPDigestAuth

from ..core.exceptions import UpstreamIOError
from .model import PunchEvent

logger = logging.getLogger(__name__)


class IsapiPunchSource:
    """Reads access-control events from an ISAPI biometric terminal.

    Pages through `AcsEventCond` searches until the device stops answering "MORE".
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str = "",
        password: str = "",
        timeout: int = 30,
        max_results: int = 1000,
        timezone_offset: str = "+05:00",
        session: Optional[requests.Session] = None,
    ):
        self._url = f"{base_url}?format=json"
        self._auth = HTTPDigestAuth(username, password) if username and password else None
        self._timeout = int(timeout)
        self._max_results = int(max_results)
        self._timezone_offset = timezone_offset or "+00:00"
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: dict) -> "IsapiPunchSource":
        return cls(
            str(config.get("base_url", "")),
            username=str(config.get("username", "")),
            password=str(config.get("password", "")),
            timeout=int(config.get("timeout", 30)),
            max_results=int(config.get("max_results", 1000)),
            timezone_offset=str(config.get("timezone_offset", "+05:00")),
        )

    def fetch(self, start: datetime, end: datetime) -> Sequence[PunchEvent]:
        events: set[PunchEvent] = set()
        position = 0
        while True:
            page = self._fetch_page(start, end, position).get("AcsEvent") or {}
            items = page.get("InfoList") or []
            for item in items:
                event = self._to_event(item)
                if event is not None:
                    events.add(event)

            position += len(items)
            if page.get("responseStatusStrg") != "MORE" or not items:
                break

        logger.info("Fetched %s punches between %s and %s", len(events), start, end)
        return sorted(events, key=lambda e: (e.timestamp, e.employee_id))

    def _fetch_page(self, start: datetime, end: datetime, position: int) -> dict[str, Any]:
        body = {
            "AcsEventCond": {
                "searchID": str(int(_time.time() * 1000)),
                "searchResultPosition": position,
                "maxResults": self._max_results,
                "major": 0,
                "minor": 0,
                "startTime": self._format(start),
                "endTime": self._format(end),
                "timeReverseOrder": True,
            }
        }
        try:
            response = self._session.post(self._url, json=body, auth=self._auth, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise UpstreamIOError(f"Biometric device request failed: {e}") from e
        except ValueError as e:
            raise UpstreamIOError(f"Biometric device returned invalid JSON: {e}") from e

    def _format(self, moment: datetime) -> str:
        return moment.strftime("%Y-%m-%dT%H:%M:%S") + self._timezone_offset

    @staticmethod
    def _to_event(item: dict) -> Optional[PunchEvent]:
        employee_id = item.get("employeeNoString")
        raw = item.get("time")
        if not employee_id or not raw:
            return None
        try:
            timestamp = datetime.strptime(str(raw)[:19], "%Y-%m-%dT%H:%M:%S")
        except ValueError:
            logger.warning("Skipping punch with unreadable time %r", raw)
            return None
        return PunchEvent(employee_id=str(employee_id), timestamp=timestamp)
