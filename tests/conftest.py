"""Shared fixtures: upstream XML builders, fake transports and stores"""
from collections.abc import Callable
from xml.sax.saxutils import escape, quoteattr

import httpx
import pytest

from radiko_harvest.services.artifact_store import InMemoryArtifactStore
from radiko_harvest.services.harvest_coordinator import reset_harvest_coordinator
from radiko_harvest.services.radiko_source_service import RadikoSourceClient, RetryPolicy


STATION_LIST_URL = "http://radiko.test/v3/station/list/JP13.xml"
SCHEDULE_URL_TEMPLATE = "http://radiko.test/v3/program/station/weekly/{station_id}.xml"


def schedule_url(station_id: str) -> str:
    return SCHEDULE_URL_TEMPLATE.replace("{station_id}", station_id)


def build_directory_xml(stations: list[tuple[str, str]]) -> str:
    entries = "".join(
        f"""
  <station>
    <id>{escape(station_id)}</id>
    <name>{escape(name)}</name>
    <ascii_name>{escape(station_id)} RADIO</ascii_name>
    <href>https://example.jp/{escape(station_id)}/</href>
    <logo width="224" height="100">https://radiko.jp/v2/static/station/logo/{escape(station_id)}/224x100.png</logo>
    <areafree>1</areafree>
    <timefree>1</timefree>
  </station>"""
        for station_id, name in stations
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<stations area_id="JP13" area_name="TOKYO JAPAN">{entries}
</stations>
"""


def make_prog(prog_id: str, ft: str, **overrides: str) -> dict[str, str]:
    prog = {
        "id": prog_id,
        "ft": ft,
        "to": str(int(ft) + 3000),
        "dur": "1800",
        "title": f"Program {prog_id}",
        "url": f"https://example.jp/programs/{prog_id}",
        "desc": "",
        "info": "<p>Program details</p>",
        "pfm": "Host Name",
        "img": f"https://radiko.jp/res/program/{prog_id}.jpg",
    }
    prog.update(overrides)
    return prog


def build_schedule_xml(
    station_id: str,
    name: str,
    days: list[tuple[str, list[dict[str, str]]]],
    *,
    omit: tuple[str, ...] = (),
) -> str:
    """Weekly schedule document; `omit` drops child tags from every prog"""
    attribute_keys = ("id", "ft", "to", "dur")
    child_keys = ("title", "url", "desc", "info", "pfm", "img")

    def render_prog(prog: dict[str, str]) -> str:
        attributes = " ".join(
            f"{key}={quoteattr(prog[key])}" for key in attribute_keys if key not in omit
        )
        children = "".join(
            f"<{key}>{escape(prog[key])}</{key}>" for key in child_keys if key not in omit
        )
        return (
            f'<prog {attributes} master_id="" ftl="0500" tol="0530">'
            f"<failed_record>0</failed_record>{children}"
            f'<metas><meta name="twitter" value="#radio"/></metas>'
            f"</prog>"
        )

    progs = "".join(
        f"<progs><date>{date}</date>{''.join(render_prog(p) for p in programs)}</progs>"
        for date, programs in days
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<radiko>
  <ttl>1800</ttl>
  <srvtime>1704067200</srvtime>
  <stations>
    <station id={quoteattr(station_id)}>
      <name>{escape(name)}</name>
      {progs}
    </station>
  </stations>
</radiko>
"""


def simple_schedule_xml(station_id: str) -> str:
    return build_schedule_xml(
        station_id,
        f"{station_id} Radio",
        [
            ("20240101", [make_prog(f"{station_id}-1", "20240101050000"), make_prog(f"{station_id}-2", "20240101053000")]),
            ("20240102", [make_prog(f"{station_id}-3", "20240102050000")]),
        ],
    )


class FakeUpstream:
    """Routes requests to canned responses and records every request"""

    def __init__(self, routes: dict[str, tuple[int, str] | Callable[[httpx.Request], httpx.Response]] | None = None):
        self.routes = dict(routes or {})
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        status_code, body = route
        return httpx.Response(status_code, text=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(autouse=True)
def _fresh_coordinator():
    reset_harvest_coordinator()
    yield
    reset_harvest_coordinator()


@pytest.fixture
def memory_store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
async def make_client():
    """Build RadikoSourceClients over FakeUpstreams, closed after the test"""
    clients: list[RadikoSourceClient] = []

    def _make(upstream: FakeUpstream, retry_policy: RetryPolicy | None = None) -> RadikoSourceClient:
        client = RadikoSourceClient(
            STATION_LIST_URL,
            SCHEDULE_URL_TEMPLATE,
            timeout=5.0,
            retry_policy=retry_policy,
            transport=upstream.transport(),
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()


@pytest.fixture
def healthy_upstream() -> FakeUpstream:
    """Directory with three stations, each with a valid schedule"""
    stations = [("TBS", "TBSラジオ"), ("QRR", "文化放送"), ("LFR", "ニッポン放送")]
    routes = {
        STATION_LIST_URL: (200, build_directory_xml(stations)),
    }
    for station_id, _ in stations:
        routes[schedule_url(station_id)] = (200, simple_schedule_xml(station_id))
    return FakeUpstream(routes)
