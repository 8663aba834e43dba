import logging

from celery import shared_task

from .services.catalog.blob_store import BlobStore

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(Exception,), retry_backoff=True, retry_kwargs={"max_retries": 3})
def purge_blobs_task(self, public_ids):
    """
    Celery task removing blobs that no product references any more.

    Args:
        public_ids: Storage names of the blobs to delete.

    Individual delete failures are logged by the store and not retried;
    only unexpected errors trigger a retry.
    """
    ids = [public_id for public_id in (public_ids or []) if public_id]
    if not ids:
        return 0
    removed = BlobStore().delete_many(ids)
    logger.info("Purged %d/%d blob(s)", removed, len(ids))
    return removed
