"""
Transform validated upstream documents into stored artifacts.

Pure functions: once a document has passed validation there is no error branch.
"""
from pydantic import TypeAdapter

from radiko_harvest.schemas import (
    Program,
    ProgramsInDate,
    Station,
    StationDirectoryDocument,
    WeeklyScheduleDocument,
)


_stations_adapter = TypeAdapter(list[Station])
_schedule_adapter = TypeAdapter(list[ProgramsInDate])


def to_stations(document: StationDirectoryDocument) -> list[Station]:
    """Select id and name of every directory entry, in source order"""
    return [
        Station(id=entry.id, name=entry.name)
        for entry in document.stations.station
    ]


def to_schedule(document: WeeklyScheduleDocument) -> list[ProgramsInDate]:
    """
    Map every `progs` entry to ProgramsInDate.

    `pfm` becomes `personality`; `desc` is validated upstream but not kept.
    Order mirrors the document exactly.
    """
    return [
        ProgramsInDate(
            date=daily.date,
            programs=[
                Program(
                    id=prog.id,
                    ft=prog.ft,
                    to=prog.to,
                    dur=prog.dur,
                    title=prog.title,
                    url=prog.url,
                    info=prog.info,
                    img=prog.img,
                    personality=prog.pfm,
                )
                for prog in daily.prog
            ],
        )
        for daily in document.radiko.stations.station.progs
    ]


def serialize_stations(stations: list[Station]) -> bytes:
    return _stations_adapter.dump_json(stations)


def serialize_schedule(schedule: list[ProgramsInDate]) -> bytes:
    return _schedule_adapter.dump_json(schedule)
