"""
rbac_admin.api.routers.google

Google Calendar / Meet endpoints for signed-in users.

Responsibilities:
- Proxy arbitrary Calendar API calls on behalf of the bearer-token user.
- Create Calendar events with an attached Google Meet conference.
- Pass provider statuses and bodies through unchanged.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, model_validator
from starlette.status import (
    HTTP_200_OK,
    HTTP_204_NO_CONTENT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from rbac_admin.api.deps import calendar_client
from rbac_admin.auth.deps import require_user
from rbac_admin.auth.models import UserActor
from rbac_admin.google.calendar import CalendarClient, NoCredentials
from rbac_admin.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/api/auth/google", tags=["google"])


class ProxyRequest(BaseModel):
    method: str = Field(min_length=1, pattern=r"(?i)^(GET|POST|PUT|PATCH|DELETE)$")
    path: str = Field(min_length=1)
    query: dict[str, Any] | None = None
    json_body: dict[str, Any] | list[Any] | None = Field(default=None, alias="json")


class EventTime(BaseModel):
    dateTime: datetime
    timeZone: str | None = None

    def instant(self) -> datetime:
        # Naive values are wall-clock times in `timeZone` (UTC when absent or unknown).
        if self.dateTime.tzinfo is not None:
            return self.dateTime
        try:
            zone = ZoneInfo(self.timeZone) if self.timeZone else UTC
        except (ZoneInfoNotFoundError, ValueError):
            zone = UTC
        return self.dateTime.replace(tzinfo=zone)


class Attendee(BaseModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")


class MeetingRequest(BaseModel):
    summary: str = Field(min_length=1, max_length=255)
    description: str | None = None
    start: EventTime
    end: EventTime
    attendees: list[Attendee] | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> MeetingRequest:
        if self.end.instant() <= self.start.instant():
            raise ValueError("end.dateTime must be after start.dateTime")
        return self


def _body(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return None


def _no_credentials(e: NoCredentials) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content={"error": e.message})


@router.post("/calendar/proxy")
async def proxy_calendar(
    body: ProxyRequest,
    actor: UserActor = Depends(require_user),
    calendar: CalendarClient = Depends(calendar_client),
) -> Response:
    try:
        r = await calendar.invoke(
            actor.user.id,
            body.method,
            body.path,
            query=body.query,
            json=body.json_body,
        )
    except NoCredentials as e:
        return _no_credentials(e)
    except httpx.HTTPError as e:
        log.error("google_calendar_proxy_failed", user_id=actor.user.id, error=str(e))
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Error al realizar la solicitud al API de Google."},
        )
    if r.status_code == HTTP_204_NO_CONTENT:
        return Response(status_code=HTTP_204_NO_CONTENT)
    return JSONResponse(status_code=r.status_code, content=_body(r))


@router.post("/meet/create")
async def create_meeting(
    body: MeetingRequest,
    actor: UserActor = Depends(require_user),
    calendar: CalendarClient = Depends(calendar_client),
) -> JSONResponse:
    event = body.model_dump(mode="json", exclude_none=True)
    try:
        r = await calendar.create_meeting(actor.user.id, event)
    except NoCredentials as e:
        return _no_credentials(e)
    except httpx.HTTPError as e:
        log.error("google_meet_create_failed", user_id=actor.user.id, error=str(e))
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Error al crear la reunión."},
        )

    if r.is_success:
        return JSONResponse(status_code=HTTP_200_OK, content=_body(r))
    return JSONResponse(
        status_code=r.status_code,
        content={"error": "Error al crear la reunión en Google Meet.", "details": _body(r)},
    )


# --- Module Notes -----------------------------------------------------------
# Only user tokens are accepted here: modules have no Google account to act for.
