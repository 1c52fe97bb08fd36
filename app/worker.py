"""
Celery worker entry point
Handles customer messages, cancellation recovery and metric recomputes
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.services.container import get_worker_services
from app.utils.my_logging import setup_logging

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Re-derive recovery attempts that came due while no worker was running"""
    logger.info("Celery worker ready")
    logger.info(f"Registered tasks: {sorted(name for name in celery_app.tasks.keys() if name.startswith('app.'))}")

    db = SessionLocal()
    try:
        processed = get_worker_services().recovery.resume_pending(db)
        logger.info(f"Startup recovery resume processed {processed} attempt(s)")
    except Exception as e:
        db.rollback()
        logger.error(f"Startup recovery resume failed: {e}", exc_info=True)
    finally:
        db.close()


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    """Handle worker shutdown"""
    logger.info("Celery worker shutting down...")


if __name__ == "__main__":
    # Run worker directly
    celery_app.start([
        'worker',
        '--beat',
        '--loglevel=info',
        '--concurrency=4',
        '--max-tasks-per-child=1000',
        '--queues=notifications,recovery,maintenance'
    ])
