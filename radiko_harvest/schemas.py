from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


# Output artifacts

class Station(BaseModel):
    """Station entry of the stored directory"""
    id: str = Field(..., description="Upstream station identifier (e.g. 'TBS')")
    name: str = Field(..., description="Display name of the station")


class Program(BaseModel):
    """Single broadcast program, all fields carried through as opaque strings"""
    id: str
    ft: str = Field(..., description="Broadcast start, provider timestamp")
    to: str = Field(..., description="Broadcast end, provider timestamp")
    dur: str = Field(..., description="Duration in seconds, kept as text")
    title: str
    url: str
    info: str = Field(..., description="Free-text/HTML description")
    img: str
    personality: str = Field(..., description="Performer names")


class ProgramsInDate(BaseModel):
    """Programs of one broadcast day, in provider order"""
    date: int | float = Field(..., description="Provider date encoding, e.g. 20240101")
    programs: list[Program]


# Upstream documents
#
# Leaves use Strict* types: a string never accepts a number and vice versa.
# Unknown keys (ttl, srvtime, genre, ...) are ignored.

class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class DirectoryStationEntry(_UpstreamModel):
    id: StrictStr
    name: StrictStr


class DirectoryStations(_UpstreamModel):
    station: list[DirectoryStationEntry]


class StationDirectoryDocument(_UpstreamModel):
    """`{stations: {station: [{id, name}]}}`"""
    stations: DirectoryStations


class ProgramEntry(_UpstreamModel):
    id: StrictStr
    ft: StrictStr
    to: StrictStr
    dur: StrictStr
    title: StrictStr
    url: StrictStr
    desc: StrictStr
    info: StrictStr
    pfm: StrictStr
    img: StrictStr


class DailyPrograms(_UpstreamModel):
    date: StrictInt | StrictFloat
    prog: list[ProgramEntry]


class ScheduleStation(_UpstreamModel):
    id: StrictStr
    name: StrictStr
    progs: list[DailyPrograms]


class ScheduleStations(_UpstreamModel):
    station: ScheduleStation


class ScheduleRoot(_UpstreamModel):
    stations: ScheduleStations


class WeeklyScheduleDocument(_UpstreamModel):
    """`{radiko: {stations: {station: {id, name, progs: [{date, prog: [...]}]}}}}`"""
    radiko: ScheduleRoot


# Staged publishing

class PublishManifest(BaseModel):
    """Maps public store keys to the staged keys of the last complete run"""
    run_id: str
    published_at: datetime
    objects: dict[str, str] = Field(default_factory=dict)
