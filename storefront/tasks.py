"""
Celery Tasks
Background jobs for keeping the remote menu in step with the local store.
"""

import asyncio
import logging
import time
from datetime import datetime

from storefront.celery_worker import celery_app
from storefront.core.config import get_settings
from storefront.services.local import build_local_store
from storefront.services.remote import build_remote_store
from storefront.services.sync import MenuSyncService, SyncResult

logger = logging.getLogger(__name__)


async def run_sync() -> SyncResult:
    """Replay local records with freshly built stores, then release them."""
    settings = get_settings()
    if not settings.use_sql_store:
        # A worker-built mock store is empty and private to this run
        logger.info(f"Sync skipped: no persistent remote store in {settings.env_mode.value} mode")
        return SyncResult(success=False, error_message="No persistent remote store configured")

    remote = build_remote_store(settings)
    try:
        service = MenuSyncService(remote, build_local_store(settings), settings)
        return await service.sync_local_to_remote()
    finally:
        await remote.close()


@celery_app.task(bind=True)
def sync_local_data(self) -> dict:
    """
    Replay records created while offline to the remote store.

    An unreachable remote is a normal outcome here, not a task error; the
    next beat run tries again.

    Returns:
        dict: SyncResult fields plus task bookkeeping
    """
    task_id = self.request.id
    start_time = time.time()

    result = asyncio.run(run_sync())

    elapsed = round(time.time() - start_time, 3)
    payload = result.to_dict()
    payload['task_id'] = task_id
    payload['processing_time_seconds'] = elapsed

    if result.success:
        logger.info(f"✅ Task {task_id}: {len(result.synced)} record(s) synced in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: sync skipped - {result.error_message}")
    return payload


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
