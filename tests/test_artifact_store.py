from pathlib import Path

import pytest

from radiko_harvest import database
from radiko_harvest.exceptions import StoreError
from radiko_harvest.services.artifact_store import (
    FileSystemArtifactStore,
    InMemoryArtifactStore,
    SqliteArtifactStore,
    compute_etag,
    create_artifact_store,
)
from radiko_harvest.services.read_service import ArtifactReader


@pytest.fixture
async def sqlite_store(tmp_path: Path):
    await database.init_db(str(tmp_path / "db" / "artifacts.db"))
    yield SqliteArtifactStore()
    await database.close_db()


@pytest.fixture
def filesystem_store(tmp_path: Path) -> FileSystemArtifactStore:
    return FileSystemArtifactStore(tmp_path / "artifacts")


@pytest.fixture(params=["memory", "filesystem", "sqlite"])
async def any_store(request, tmp_path: Path):
    if request.param == "memory":
        yield InMemoryArtifactStore()
    elif request.param == "filesystem":
        yield FileSystemArtifactStore(tmp_path / "artifacts")
    else:
        await database.init_db(str(tmp_path / "artifacts.db"))
        yield SqliteArtifactStore()
        await database.close_db()


async def test_put_then_get_returns_payload_and_metadata(any_store) -> None:
    payload = '[{"id":"TBS","name":"TBSラジオ"}]'.encode("utf-8")

    await any_store.put("stations.json", payload)
    stored = await any_store.get("stations.json")

    assert stored.body == payload
    assert stored.content_type == "application/json"
    assert stored.etag == compute_etag(payload)
    assert stored.etag.startswith('"') and stored.etag.endswith('"')


async def test_put_replaces_previous_object(any_store) -> None:
    await any_store.put("programs/TBS.json", b"[1]")
    await any_store.put("programs/TBS.json", b"[2]")

    stored = await any_store.get("programs/TBS.json")

    assert stored.body == b"[2]"
    assert stored.etag == compute_etag(b"[2]")


async def test_missing_key_is_none(any_store) -> None:
    assert await any_store.get("programs/NEVER.json") is None


async def test_filesystem_store_writes_nested_keys(filesystem_store: FileSystemArtifactStore) -> None:
    await filesystem_store.put("programs/QRR.json", b"[]")

    path = filesystem_store.root / "programs" / "QRR.json"
    assert path.read_bytes() == b"[]"
    assert [p.name for p in path.parent.iterdir()] == ["QRR.json"]


async def test_filesystem_store_rejects_keys_outside_root(filesystem_store: FileSystemArtifactStore) -> None:
    with pytest.raises(StoreError):
        await filesystem_store.put("../escape.json", b"[]")

    assert await filesystem_store.get("../escape.json") is None


async def test_filesystem_store_directory_is_not_an_object(filesystem_store: FileSystemArtifactStore) -> None:
    await filesystem_store.put("programs/TBS.json", b"[]")

    assert await filesystem_store.get("programs") is None


async def test_sqlite_store_keeps_explicit_content_type(sqlite_store: SqliteArtifactStore) -> None:
    await sqlite_store.put("notes.txt", b"hello", content_type="text/plain")

    stored = await sqlite_store.get("notes.txt")

    assert stored.content_type == "text/plain"


async def test_sqlite_store_requires_initialized_database() -> None:
    with pytest.raises(RuntimeError):
        await SqliteArtifactStore().get("stations.json")


def test_create_artifact_store(tmp_path: Path) -> None:
    assert isinstance(create_artifact_store("memory"), InMemoryArtifactStore)
    assert isinstance(create_artifact_store("sqlite"), SqliteArtifactStore)
    store = create_artifact_store("filesystem", storage_root=str(tmp_path))
    assert isinstance(store, FileSystemArtifactStore)

    with pytest.raises(ValueError):
        create_artifact_store("filesystem")
    with pytest.raises(ValueError):
        create_artifact_store("s3")


@pytest.mark.parametrize(
    "alias",
    ["stations.json/", "./stations.json", "programs/../stations.json", "programs//TBS.json"],
)
async def test_filesystem_store_keys_are_not_normalized(filesystem_store: FileSystemArtifactStore, alias) -> None:
    await filesystem_store.put("stations.json", b"[]")
    await filesystem_store.put("programs/TBS.json", b"[]")

    assert await filesystem_store.get(alias) is None
    with pytest.raises(StoreError):
        await filesystem_store.put(alias, b"[]")


async def test_filesystem_reader_trailing_slash_is_not_found(filesystem_store: FileSystemArtifactStore) -> None:
    await filesystem_store.put("stations.json", b"[]")

    response = await ArtifactReader(filesystem_store).handle("GET", "/stations.json/")

    assert response.status_code == 404
