import logging
import os
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from embedding_service import batch_generate_embeddings, generate_bookmark_embedding
from services.hierarchy_service import list_owners_missing_embeddings

logger = logging.getLogger(__name__)

_scheduler = None


def start_app_context_job(app, target, args=(), kwargs=None, on_error=None):
    """Run target on a daemon thread inside app's context."""

    def _run():
        with app.app_context():
            try:
                target(*args, **(kwargs or {}))
            except Exception as exc:
                if on_error:
                    on_error(exc)
                else:
                    logger.exception("Background job %s failed", getattr(target, "__name__", target))

    thread = threading.Thread(target=_run, daemon=True)
    thread.start()
    return thread


def start_bookmark_embedding_job(app, bookmark_id):
    """Embed a freshly created bookmark without blocking the request."""

    def _on_error(exc):
        app.logger.warning("Embedding failed for bookmark %s (%s)", bookmark_id, exc)

    return start_app_context_job(app, generate_bookmark_embedding, args=(bookmark_id,), on_error=_on_error)


def sweep_missing_embeddings(app):
    """Batch-embed every owner that still has bookmarks without embeddings."""
    total = 0
    with app.app_context():
        for owner_id in list_owners_missing_embeddings():
            total += batch_generate_embeddings(owner_id)
    if total:
        logger.info("Embedding sweep enriched %s bookmark(s)", total)
    return total


def start_scheduler(app):
    global _scheduler
    if _scheduler and _scheduler.running:
        return _scheduler
    # Avoid double-start in Flask debug reloader
    if app.debug and os.environ.get('WERKZEUG_RUN_MAIN') != 'true':
        return None
    _scheduler = BackgroundScheduler()
    _scheduler.add_job(
        sweep_missing_embeddings,
        'interval',
        args=(app,),
        minutes=int(app.config.get('EMBEDDING_SWEEP_MINUTES', 30)),
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    logger.info("Embedding sweep scheduled every %s minute(s)", app.config.get('EMBEDDING_SWEEP_MINUTES', 30))
    return _scheduler
