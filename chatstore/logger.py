import logging
import os
import sys
from datetime import datetime

from .paths import get_path_to
from .timeutil import display_zone, tz_time

MAX_LINES = 8192
LOG_FILE = 'logs.txt'

CONSOLE_FORMAT = ' %(levelname)-5s %(name)s > %(message)s'
FILE_FORMAT = '[%(levelname)-5s %(asctime)s] %(name)s > %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Libraries that log every statement at INFO when echo is on
NOISY_LOGGERS = ['sqlalchemy.engine', 'sqlalchemy.pool']


def _count_lines(filename):
    try:
        with open(filename, encoding='utf-8') as fh:
            return sum(1 for _ in fh)
    except FileNotFoundError:
        return 0


class TruncatingFileHandler(logging.FileHandler):
    """
    Append-only log file that keeps itself bounded.

    Once the file grows past one and a half times ``max_lines`` it is
    rewritten to hold only the most recent ``max_lines`` lines.
    """

    def __init__(self, filename, max_lines=MAX_LINES):
        super().__init__(filename, mode='a', encoding='utf-8')
        self.max_lines = max_lines
        self.threshold = max_lines + max_lines // 2
        self.line_count = _count_lines(self.baseFilename)

    def write_banner(self):
        date = tz_time().strftime(DATE_FORMAT)
        self.stream.write(f'=============================[ {date} ]=============================\n')
        self.flush()
        self.line_count += 1

    def emit(self, record):
        super().emit(record)
        self.line_count += self.format(record).count('\n') + 1
        if self.line_count < self.threshold:
            return
        try:
            self.truncate()
        except OSError:
            self.handleError(record)

    def truncate(self):
        self.flush()
        with open(self.baseFilename, encoding='utf-8') as fh:
            lines = fh.readlines()
        kept = lines[-self.max_lines:]
        with open(self.baseFilename, 'w', encoding='utf-8') as fh:
            fh.writelines(kept)
        self.line_count = len(kept)


def _file_formatter():
    zone = display_zone()
    formatter = logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
    formatter.converter = lambda secs: datetime.fromtimestamp(secs, zone).timetuple()
    return formatter


def init_logging(level=None, log_file=None):
    """Log to stderr and to logs.txt in the data directory."""
    level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    root = logging.getLogger()

    # Replace handlers from an earlier call instead of stacking them
    for handler in list(root.handlers):
        if getattr(handler, 'chatstore', False):
            root.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console.chatstore = True

    file_handler = TruncatingFileHandler(log_file or get_path_to(LOG_FILE))
    file_handler.setFormatter(_file_formatter())
    file_handler.chatstore = True
    file_handler.write_banner()

    root.addHandler(console)
    root.addHandler(file_handler)
    root.setLevel(level)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        'Logger initialized successfully with level: %s', logging.getLevelName(root.level)
    )
    return file_handler
