# brokerdesk/core/logging_config.py

import logging
from logging.handlers import RotatingFileHandler
import os
import sys

from brokerdesk.core.config import settings

MAX_LOG_SIZE_MB = 10
BACKUP_COUNT = 5

# logs/ at the project root unless LOG_DIR points elsewhere
LOG_DIR = settings.LOG_DIR or os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), 'logs')
os.makedirs(LOG_DIR, exist_ok=True)


def setup_file_logger(name: str, filename: str, level=logging.INFO) -> logging.Logger:
    """
    Creates a rotating file logger with specified filename and level.
    Calling it twice for the same name does not stack handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return logger

    log_path = os.path.join(LOG_DIR, filename)
    handler = RotatingFileHandler(log_path, maxBytes=MAX_LOG_SIZE_MB * 1024 * 1024, backupCount=BACKUP_COUNT)
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def setup_stream_logger(name: str, level=logging.ERROR) -> logging.Logger:
    """
    Creates a logger that outputs to the console (stdout).
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        return logger

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger

# --- Loggers by Component ---

database_logger      = setup_file_logger("database", "database.log", logging.INFO)
security_logger      = setup_file_logger("brokerdesk.core.security", "security.log", logging.DEBUG)
app_logger           = setup_file_logger("brokerdesk", "app.log", logging.INFO)
referrals_logger     = setup_file_logger("referrals", "referrals.log", logging.DEBUG)
commissions_logger   = setup_file_logger("commissions", "commissions.log", logging.DEBUG)
deposits_logger      = setup_file_logger("deposits", "deposits.log", logging.DEBUG)
payments_logger      = setup_file_logger("payments", "payments.log", logging.DEBUG)
audit_logger         = setup_file_logger("audit", "audit.log", logging.INFO)
admin_logger         = setup_file_logger("admin", "admin.log", logging.INFO)
notifications_logger = setup_file_logger("notifications", "notifications.log", logging.INFO)
error_logger         = setup_file_logger("error", "error.log", logging.ERROR)

# Errors also go to the console
console_error_logger = setup_stream_logger("console_errors", logging.ERROR)

logging.getLogger("redis").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
