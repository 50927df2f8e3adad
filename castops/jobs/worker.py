"""
Background worker runner.

Reads the job name from CLI args or the WORKER_JOB environment variable and
runs the matching reconciliation pass over every page.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from castops.config import settings
from castops.dependencies import ServiceContainer
from castops.infrastructure.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]


async def run_drive_link_sync() -> None:
    container = await ServiceContainer.create(settings)
    try:
        result = await container.drive_sync.sync_drive_links()
        logger.info("Drive link sync finished", found=result.found, updated=result.updated)
    finally:
        await container.close()


async def run_shoot_detail_sync() -> None:
    container = await ServiceContainer.create(settings)
    try:
        result = await container.shoot_details.sync_shoot_details()
        logger.info("Shoot detail sync finished", found=result.found, updated=result.updated)
    finally:
        await container.close()


JOB_REGISTRY: dict[str, JobCoroutine] = {
    "drive_link_sync": run_drive_link_sync,
    "shoot_detail_sync": run_shoot_detail_sync,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "drive_link_sync").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.log_level)
    asyncio.run(run_worker(_resolve_job_name()))


if __name__ == "__main__":
    main()
