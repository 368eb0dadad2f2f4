"""
Logging configuration for the Msegat client

Applications embedding the client usually configure logging themselves; the
CLI calls setup_logging() so its output follows LOG_LEVEL and LOG_FILE.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone


def setup_logging(log_level=None, log_file=None, max_bytes=10*1024*1024, backup_count=5):
    """
    Set up logging configuration for the Msegat CLI.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, logs to stderr)
        max_bytes: Maximum size of log file before rotation (default 10MB)
        backup_count: Number of backup log files to keep (default 5)
    """

    # Default log level from environment or WARNING
    if log_level is None:
        log_level = os.environ.get('LOG_LEVEL', 'WARNING')
    log_level = log_level.upper()
    if not isinstance(getattr(logging, log_level, None), int):
        print(f"Unknown log level '{log_level}', using WARNING", file=sys.stderr)
        log_level = 'WARNING'

    if log_file is None:
        log_file = os.environ.get('LOG_FILE')

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level))
    root_logger.handlers.clear()

    if log_file:
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
    else:
        # stdout carries the command's JSON output
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized - Level: {log_level}, Output: {log_file or 'stderr'}")

    return logger


def get_logger(name):
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def mask_number(number):
    """Keep only the last four digits of a phone number"""
    if not number:
        return number
    number = str(number)
    if len(number) <= 4:
        return '*' * len(number)
    return '*' * (len(number) - 4) + number[-4:]


def log_sms_event(event_type, to_number=None, sender=None, recipients=None,
                  success=True, error=None):
    """
    Log SMS-related events with structured information.

    Args:
        event_type: Type of SMS event (e.g., 'sms_sent', 'otp_failed')
        to_number: Recipient phone number, masked before logging
        sender: Sender name the message went out under
        recipients: Number of recipients of a bulk send
        success: Whether the operation was successful
        error: Error message if applicable
    """
    logger = logging.getLogger('msegat.sms')

    log_data = {
        'event_type': event_type,
        'success': success,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }

    if to_number:
        log_data['to_number'] = mask_number(to_number)
    if sender:
        log_data['sender'] = sender
    if recipients is not None:
        log_data['recipients'] = recipients
    if error:
        log_data['error'] = error

    # Format as key=value pairs for easy parsing
    log_message = ' '.join([f"{k}={v}" for k, v in log_data.items()])

    if success:
        logger.info(f"SMS: {log_message}")
    else:
        logger.error(f"SMS: {log_message}")
