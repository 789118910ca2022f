"""
Radiko Source Service

Issues the read-only upstream requests (station directory, weekly schedule)
and hands the raw payloads to the decoder and validator.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import cast

import httpx

from radiko_harvest.exceptions import TransportError
from radiko_harvest.schemas import StationDirectoryDocument, WeeklyScheduleDocument
from radiko_harvest.services.validation_service import (
    FORCE_LIST_TAGS,
    DocumentKind,
    require_valid,
)
from radiko_harvest.services.xml_decoder_service import decode_xml


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempts and exponential backoff for upstream requests.

    The default is a single attempt: failures surface immediately.
    """
    max_attempts: int = 1
    backoff_initial_sec: float = 1.0
    backoff_multiplier: float = 2.0
    backoff_max_sec: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def delay_for(self, attempt: int) -> float:
        """Wait before retrying after the given 0-based attempt"""
        delay = self.backoff_initial_sec * (self.backoff_multiplier ** attempt)
        return min(delay, self.backoff_max_sec)


class RadikoSourceClient:
    """Async client for the radiko station directory and weekly schedules"""

    def __init__(
        self,
        station_list_url: str,
        weekly_schedule_url_template: str,
        *,
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.station_list_url = station_list_url
        self.weekly_schedule_url_template = weekly_schedule_url_template
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> RadikoSourceClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def weekly_schedule_url(self, station_id: str) -> str:
        # Station ids come from the upstream directory and are used verbatim
        return self.weekly_schedule_url_template.replace("{station_id}", station_id)

    async def fetch_station_directory(self) -> bytes:
        """Fetch the raw station directory XML"""
        return await self._get(self.station_list_url)

    async def fetch_weekly_schedule(self, station_id: str) -> bytes:
        """Fetch the raw weekly schedule XML of one station"""
        return await self._get(self.weekly_schedule_url(station_id))

    async def get_station_directory(self) -> StationDirectoryDocument:
        """
        Fetch, decode and validate the station directory

        Raises:
            TransportError: If the request fails
            XMLDecodeError: If the payload is not XML
            DocumentValidationError: If the payload does not match the directory schema
        """
        raw = await self.fetch_station_directory()
        kind = DocumentKind.STATION_DIRECTORY
        tree = decode_xml(raw, force_list=FORCE_LIST_TAGS[kind])
        return cast(StationDirectoryDocument, require_valid(kind, tree))

    async def get_weekly_schedule(self, station_id: str) -> WeeklyScheduleDocument:
        """
        Fetch, decode and validate the weekly schedule of one station

        Raises:
            TransportError: If the request fails
            XMLDecodeError: If the payload is not XML
            DocumentValidationError: If the payload does not match the schedule schema
        """
        raw = await self.fetch_weekly_schedule(station_id)
        kind = DocumentKind.WEEKLY_SCHEDULE
        tree = decode_xml(raw, force_list=FORCE_LIST_TAGS[kind])
        return cast(WeeklyScheduleDocument, require_valid(kind, tree))

    async def _get(self, url: str) -> bytes:
        """
        GET a URL following the retry policy

        Retries on transient network errors (timeouts, connection errors) and
        5xx responses. Never retries 4xx responses.

        Raises:
            TransportError: If the request fails on its last allowed attempt
        """
        max_attempts = self.retry_policy.max_attempts
        logger.debug(f"Requesting {url}")

        for attempt in range(max_attempts):
            try:
                response = await self._client.get(url)
                response.raise_for_status()
                logger.debug(f"Received {len(response.content)} bytes from {url}")
                return response.content

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if 400 <= status_code < 500 or attempt == max_attempts - 1:
                    logger.error(f"HTTP {status_code} from {url}")
                    raise TransportError(url, f"HTTP {status_code} from {url}", status_code) from e
                wait_time = self.retry_policy.delay_for(attempt)
                logger.warning(
                    f"Request attempt {attempt + 1}/{max_attempts} failed "
                    f"(HTTP {status_code} server error). Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)

            except httpx.RequestError as e:
                if attempt == max_attempts - 1:
                    logger.error(f"Request to {url} failed: {type(e).__name__}: {e}")
                    raise TransportError(url, f"{type(e).__name__} requesting {url}: {e}") from e
                wait_time = self.retry_policy.delay_for(attempt)
                logger.warning(
                    f"Request attempt {attempt + 1}/{max_attempts} failed (transient error): "
                    f"{type(e).__name__}. Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)

        raise RuntimeError(f"Failed to request {url} after {max_attempts} attempts")
