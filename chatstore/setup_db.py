import logging

from .models import db

logger = logging.getLogger(__name__)


def init_db(drop=False):
    """Create every table and index. Must run inside an app context."""
    if drop:
        logger.warning('Dropping all tables in %s', db.engine.url)
        db.drop_all()
    db.create_all()
    logger.info('Schema ready in %s', db.engine.url)
