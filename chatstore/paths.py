import logging
import os
from functools import lru_cache
from pathlib import Path

BASE_PATH_NAME = 'chatstore'

logger = logging.getLogger(__name__)


def _os_specific_path():
    override = os.getenv('CHATSTORE_HOME')
    if override:
        return Path(override)
    if os.name == 'nt':
        return Path(os.environ['USERPROFILE']) / BASE_PATH_NAME
    return Path.home() / f'.{BASE_PATH_NAME}'


@lru_cache(maxsize=None)
def get_base_path():
    """
    Data directory for the database and log file.

    %USERPROFILE%\\chatstore on Windows, $HOME/.chatstore elsewhere, or
    CHATSTORE_HOME when set. Created on first call; later calls return the
    cached path.
    """
    path = _os_specific_path()
    if not path.exists():
        try:
            path.mkdir(parents=True)
        except OSError:
            logger.error('Failed to create base path %s', path)
            raise
    return path


def get_path_to(path):
    return get_base_path() / str(path).lstrip('/')


def default_database_url():
    return f"sqlite:///{get_path_to('database.sqlite3')}"
