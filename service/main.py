import asyncio
import sys

from loguru import logger

from migrascope import Dashboard
from migrascope.config import get_settings


async def _serve():
    dashboard = Dashboard.from_settings()
    dashboard.health.subscribe(
        lambda h: logger.info("service={} oracle={} postgres={}", h.service_online, h.oracle.label, h.postgres.label)
    )
    dashboard.jobs.subscribe(lambda s: logger.info("jobs={} execute={}", len(s.jobs), s.execute_slot.state))
    await dashboard.start()
    try:
        await asyncio.Event().wait()
    finally:
        await dashboard.aclose()


def run():
    settings = get_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
