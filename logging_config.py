"""
Logging setup for MowerManager.

configure_logging() attaches a console handler plus two rotating files
under Config.LOG_DIR: mowermanager.log (everything from DEBUG) and
errors.log (ERROR and above). Config.LOG_FORMAT = "json" switches every
handler to single-line JSON. Importing this module configures the root
logger once; calling configure_logging() again replaces its own handlers
instead of stacking new ones.
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler

from config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

APP_LOG = 'mowermanager.log'
ERROR_LOG = 'errors.log'

# Marks handlers installed here so a reconfigure can find them
_HANDLER_TAG = '_mowermanager_handler'

NOISY_LOGGERS = ('werkzeug', 'urllib3', 'PIL', 'alembic.runtime.migration')


class JsonFormatter(logging.Formatter):
    """Outputs log records as single-line JSON objects."""

    def format(self, record):
        log_entry = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "filename": record.filename,
            "lineno": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def _resolve_log_dir(log_dir):
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        return '.'
    return log_dir


def _rotating(path, level, max_mb, backups):
    try:
        handler = RotatingFileHandler(path, maxBytes=max_mb * 1024 * 1024, backupCount=backups)
    except OSError:
        return None
    handler.setLevel(level)
    return handler


def configure_logging(target=None, log_dir=None, log_format=None):
    """Install MowerManager's handlers on ``target`` (the root logger by default).

    Args:
        target: logger to configure.
        log_dir: directory for the rotating files, defaults to Config.LOG_DIR.
        log_format: "text" or "json", defaults to Config.LOG_FORMAT.

    Returns:
        list of the handlers now attached.
    """
    target = target if target is not None else logging.getLogger()
    log_dir = _resolve_log_dir(log_dir or Config.LOG_DIR)
    use_json = (log_format or Config.LOG_FORMAT or 'text').lower() == 'json'
    formatter = JsonFormatter() if use_json else logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    for old in [h for h in target.handlers if getattr(h, _HANDLER_TAG, False)]:
        target.removeHandler(old)
        old.close()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    handlers = [
        console,
        _rotating(os.path.join(log_dir, APP_LOG), logging.DEBUG, 5, 5),
        _rotating(os.path.join(log_dir, ERROR_LOG), logging.ERROR, 2, 3),
    ]
    handlers = [h for h in handlers if h is not None]

    target.setLevel(logging.DEBUG)
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_TAG, True)
        target.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handlers


configure_logging()

logger = logging.getLogger('mowermanager')
logger.info("MowerManager logging initialized")
