"""Background sweep loop driving the threshold evaluator"""
import os
import asyncio
import logging
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.alerts.notifier import Notifier, get_notifier
from app.alerts.permissions import CareRelationshipPermissionOracle
from app.db.postgres import AsyncSessionLocal
from app.inactivity.evaluator import ThresholdEvaluator

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "10"))


async def run_sweep_once(
    session_factory: async_sessionmaker = AsyncSessionLocal,
    notifier: Optional[Notifier] = None,
) -> Dict:
    """Run a single sweep in its own database session"""
    notifier = notifier or get_notifier()
    async with session_factory() as session:
        evaluator = ThresholdEvaluator(session, CareRelationshipPermissionOracle(session), notifier)
        return await evaluator.run_sweep()


async def run_forever(
    interval: int = SWEEP_INTERVAL_SECONDS,
    session_factory: async_sessionmaker = AsyncSessionLocal,
    stop_event: Optional[asyncio.Event] = None,
    notifier: Optional[Notifier] = None,
):
    """
    Sweep every `interval` seconds until `stop_event` is set.

    A failed sweep is logged and the loop carries on; the next sweep
    re-derives everything from stored timestamps.
    """
    stop_event = stop_event or asyncio.Event()
    while not stop_event.is_set():
        try:
            await run_sweep_once(session_factory, notifier)
        except Exception as e:
            logger.error(f"Sweep failed: {e}")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass


def start_sweeper():
    """Entry point for the periodic inactivity sweeper."""
    logging.basicConfig(level=logging.INFO)

    logger.info("="*60)
    logger.info("Motion Inactivity Service - Threshold Sweeper")
    logger.info(f"Sweep interval: {SWEEP_INTERVAL_SECONDS}s")
    logger.info("="*60)

    try:
        asyncio.run(run_forever())
    except KeyboardInterrupt:
        logger.info("Sweeper stopped")
