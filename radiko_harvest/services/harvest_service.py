"""
Harvest Service

Fetches the station directory and every station's weekly schedule, and writes
them to the artifact store, one station at a time in directory order.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Literal

from radiko_harvest.config import settings
from radiko_harvest.dependencies import get_service_locator
from radiko_harvest.exceptions import HarvestError
from radiko_harvest.schemas import PublishManifest
from radiko_harvest.services.artifact_store import ArtifactStore
from radiko_harvest.services.harvest_coordinator import get_harvest_coordinator
from radiko_harvest.services.harvest_types import (
    MANIFEST_KEY,
    STAGING_PREFIX,
    STATIONS_KEY,
    HarvestResult,
    HarvestStage,
    schedule_key,
)
from radiko_harvest.services.radiko_source_service import RadikoSourceClient
from radiko_harvest.services.transform_service import (
    serialize_schedule,
    serialize_stations,
    to_schedule,
    to_stations,
)
from radiko_harvest.utils.logging_helpers import (
    log_harvest_end,
    log_harvest_start,
    log_station_processing,
    sanitize_url_for_logging,
)


logger = logging.getLogger(__name__)


class HarvestPipeline:
    """
    One harvest run: directory, then each station's schedule.

    The first failure stops the run. In "direct" mode stations processed
    before the failure keep their fresh artifacts and later ones keep whatever
    a previous run wrote. In "staged" mode artifacts are written under a
    per-run prefix and become visible only through the manifest written once
    every station succeeded.
    """

    def __init__(
        self,
        source: RadikoSourceClient,
        store: ArtifactStore,
        *,
        publish_mode: Literal["direct", "staged"] = "direct",
        run_id: str | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.publish_mode = publish_mode
        self.run_id = run_id or uuid.uuid4().hex
        self._current_station: str | None = None
        self._staged_objects: dict[str, str] = {}

    async def run(self) -> HarvestResult:
        result = HarvestResult(
            run_id=self.run_id,
            started_at=datetime.now(timezone.utc),
            publish_mode=self.publish_mode,
        )
        logger.info(
            "Harvest run %s started (publish mode: %s, directory: %s)",
            self.run_id,
            self.publish_mode,
            sanitize_url_for_logging(self.source.station_list_url),
        )

        try:
            await self._harvest(result)
        except HarvestError as exc:
            self._record_failure(result, exc)
            logger.error(
                "Harvest run %s failed during %s%s: %s",
                self.run_id,
                result.stage.value,
                f" (station {result.failed_station_id})" if result.failed_station_id else "",
                exc,
                exc_info=True,
            )
        except asyncio.CancelledError:
            result.completed_at = datetime.now(timezone.utc)
            logger.warning(
                "Harvest run %s cancelled during %s after %s/%s stations; "
                "artifacts already written are kept",
                self.run_id,
                result.stage.value,
                result.stations_written,
                result.stations_total,
            )
            raise
        except Exception as exc:  # Catch-all so the trigger never sees an error
            self._record_failure(result, exc)
            logger.error(
                "Unexpected error in harvest run %s during %s: %s",
                self.run_id,
                result.stage.value,
                exc,
                exc_info=True,
            )
        else:
            result.status = "success"
            result.stage = HarvestStage.DONE

        result.completed_at = datetime.now(timezone.utc)
        logger.info(
            "Harvest run %s finished: %s (%s/%s stations written, %.1fs)",
            self.run_id,
            result.status,
            result.stations_written,
            result.stations_total,
            result.duration_seconds,
        )
        return result

    async def _harvest(self, result: HarvestResult) -> None:
        result.stage = HarvestStage.FETCH_DIRECTORY
        directory = await self.source.get_station_directory()
        stations = to_stations(directory)
        result.stations_total = len(stations)
        logger.info("Station directory contains %s stations", len(stations))

        result.stage = HarvestStage.WRITE_DIRECTORY
        await self._write(result, STATIONS_KEY, serialize_stations(stations))

        for index, station in enumerate(stations, start=1):
            self._current_station = station.id
            log_station_processing(logger, index, len(stations), station.id, station.name)

            result.stage = HarvestStage.FETCH_SCHEDULE
            result.stations_attempted += 1
            document = await self.source.get_weekly_schedule(station.id)
            schedule = to_schedule(document)

            result.stage = HarvestStage.WRITE_SCHEDULE
            await self._write(result, schedule_key(station.id), serialize_schedule(schedule))
            result.stations_written += 1
            logger.debug(
                "[Station %s] Stored %s days, %s programs",
                station.id,
                len(schedule),
                sum(len(day.programs) for day in schedule),
            )

        self._current_station = None

        if self.publish_mode == "staged":
            result.stage = HarvestStage.PUBLISH
            await self._publish(result)

    async def _write(self, result: HarvestResult, key: str, data: bytes) -> None:
        target = key
        if self.publish_mode == "staged":
            target = f"{STAGING_PREFIX}/{self.run_id}/{key}"
            self._staged_objects[key] = target
        await self.store.put(target, data)
        result.written_keys.append(target)

    async def _publish(self, result: HarvestResult) -> None:
        """Swap the manifest so readers see every artifact of this run at once"""
        manifest = PublishManifest(
            run_id=self.run_id,
            published_at=datetime.now(timezone.utc),
            objects=dict(self._staged_objects),
        )
        await self.store.put(MANIFEST_KEY, manifest.model_dump_json().encode("utf-8"))
        result.written_keys.append(MANIFEST_KEY)
        logger.info("Published manifest for run %s (%s objects)", self.run_id, len(manifest.objects))

    def _record_failure(self, result: HarvestResult, exc: Exception) -> None:
        result.status = "failed"
        result.error_type = type(exc).__name__
        result.error = str(exc)
        if result.stage in (HarvestStage.FETCH_SCHEDULE, HarvestStage.WRITE_SCHEDULE):
            result.failed_station_id = self._current_station


async def run_harvest(
    store: ArtifactStore | None = None,
    source: RadikoSourceClient | None = None,
) -> HarvestResult:
    """
    Main entry point for a harvest run with concurrency protection.

    Never raises for harvest failures; the returned result carries the outcome.
    """
    coordinator = get_harvest_coordinator()
    return await coordinator.execute(lambda: _run_once(store, source))


async def _run_once(
    store: ArtifactStore | None,
    source: RadikoSourceClient | None,
) -> HarvestResult:
    log_harvest_start(logger)
    started_at = datetime.now(timezone.utc)
    owns_source = source is None

    try:
        locator = get_service_locator()
        store = store or locator.get(ArtifactStore)
        source = source or locator.get(RadikoSourceClient)
        pipeline = HarvestPipeline(source, store, publish_mode=settings.publish_mode)
        result = await pipeline.run()
    except Exception as exc:  # Catch-all so the trigger never sees an error
        logger.error("Harvest could not start: %s", exc, exc_info=True)
        result = HarvestResult(
            run_id=uuid.uuid4().hex,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            publish_mode=settings.publish_mode,
            status="failed",
            error_type=type(exc).__name__,
            error=str(exc),
        )
    finally:
        if owns_source and source is not None:
            await source.aclose()

    log_harvest_end(logger, result.status)
    return result
