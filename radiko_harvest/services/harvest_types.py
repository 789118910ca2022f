"""
Shared dataclasses used across the harvest pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal


STATIONS_KEY = "stations.json"
MANIFEST_KEY = "manifest.json"
STAGING_PREFIX = "staging"


def schedule_key(station_id: str) -> str:
    """Store key of one station's weekly schedule"""
    return f"programs/{station_id}.json"


class HarvestStage(str, Enum):
    """Steps of a harvest run, in execution order"""
    FETCH_DIRECTORY = "fetch_directory"
    WRITE_DIRECTORY = "write_directory"
    FETCH_SCHEDULE = "fetch_schedule"
    WRITE_SCHEDULE = "write_schedule"
    PUBLISH = "publish"
    DONE = "done"


@dataclass(slots=True)
class HarvestResult:
    """Observable outcome of one harvest run."""
    run_id: str
    started_at: datetime
    publish_mode: Literal["direct", "staged"] = "direct"
    status: Literal["running", "success", "failed", "skipped"] = "running"
    stage: HarvestStage = HarvestStage.FETCH_DIRECTORY
    completed_at: datetime | None = None
    stations_total: int = 0
    stations_attempted: int = 0
    stations_written: int = 0
    failed_station_id: str | None = None
    error_type: str | None = None
    error: str | None = None
    written_keys: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        payload = {
            "run_id": self.run_id,
            "status": self.status,
            "stage": self.stage.value,
            "publish_mode": self.publish_mode,
            "stations_total": self.stations_total,
            "stations_attempted": self.stations_attempted,
            "stations_written": self.stations_written,
            "written_keys": list(self.written_keys),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
        if self.failed_station_id:
            payload["failed_station_id"] = self.failed_station_id
        if self.error:
            payload["error_type"] = self.error_type
            payload["error"] = self.error
        return payload


__all__ = [
    "HarvestResult",
    "HarvestStage",
    "MANIFEST_KEY",
    "STAGING_PREFIX",
    "STATIONS_KEY",
    "schedule_key",
]
