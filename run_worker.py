#!/usr/bin/env python3
"""Run the notification worker as a polling loop.

Runs one delivery cycle every WORKER_INTERVAL_SECONDS and a
reconciliation sweep every WORKER_RECONCILE_EVERY_CYCLES cycles.
SIGINT/SIGTERM let the current cycle finish before exiting.
"""

import logging
import signal
import threading

from rytetime.cache import get_task_cache
from rytetime.channels.registry import get_dispatcher_registry
from rytetime.database.database import SessionLocal, init_db
from rytetime.engine.notification_worker import NotificationWorker
from rytetime.engine.reconciliation import reconcile_unqueued_reminders
from rytetime.errors import QueueUnavailable, StoreUnavailable
from rytetime.models.constants import WORKER_INTERVAL_SECONDS, WORKER_RECONCILE_EVERY_CYCLES
from rytetime.queue import get_notification_queue

logger = logging.getLogger("rytetime.worker")

_stop = threading.Event()


def _request_stop(signum, frame) -> None:
    logger.info(f"Received signal {signum}, stopping after the current cycle")
    _stop.set()


def run_once(cycle: int) -> None:
    queue = get_notification_queue()
    db = SessionLocal()
    try:
        if cycle % WORKER_RECONCILE_EVERY_CYCLES == 0:
            reconcile_unqueued_reminders(db, queue)
        NotificationWorker(db, queue, get_dispatcher_registry(), get_task_cache()).run_cycle()
    except (QueueUnavailable, StoreUnavailable) as e:
        logger.warning(f"Worker cycle aborted: {e}")
    finally:
        db.close()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)
    init_db()

    logger.info(f"Worker started, polling every {WORKER_INTERVAL_SECONDS}s")
    cycle = 0
    while not _stop.is_set():
        run_once(cycle)
        cycle += 1
        _stop.wait(WORKER_INTERVAL_SECONDS)
    logger.info("Worker stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
