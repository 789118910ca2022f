"""
One-shot harvest: `python -m radiko_harvest`

Runs a single harvest against the configured store and exits non-zero if it failed.
"""
import asyncio
import json
import logging
import sys

from radiko_harvest.config import settings, setup_logging
from radiko_harvest.database import close_db, init_db
from radiko_harvest.dependencies import get_service_locator
from radiko_harvest.services.artifact_store import ArtifactStore, create_artifact_store
from radiko_harvest.services.harvest_service import run_harvest


logger = logging.getLogger("radiko_harvest")


async def _main() -> int:
    if settings.storage_backend == "memory":
        logger.warning("Memory backend selected - artifacts are discarded on exit")
    if settings.storage_backend == "sqlite":
        await init_db()
    try:
        store = create_artifact_store(settings.storage_backend, storage_root=settings.storage_root)
        get_service_locator().register_singleton(ArtifactStore, store)
        result = await run_harvest()
    finally:
        await close_db()

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0 if result.succeeded else 1


def main() -> None:
    setup_logging()
    sys.exit(asyncio.run(_main()))


if __name__ == "__main__":
    main()
