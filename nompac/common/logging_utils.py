"""
Logging utilities for nompac
"""

import logging

COLORS = {
    'INFO': '\033[34m',      # Blue
    'WARNING': '\033[33m',   # Yellow
    'ERROR': '\033[31m',     # Red
    'CRITICAL': '\033[41m',  # Red background
    'DEBUG': '\033[35m',     # Purple
    'SUCCESS': '\033[32m',   # Green
}
RESET = '\033[0m'


class ColorFormatter(logging.Formatter):
    """Colorize the level name like the bash scripts do"""

    def format(self, record):
        levelname = record.levelname
        # logger.info(..., extra={'success': True}) renders green
        if getattr(record, 'success', False):
            levelname = 'SUCCESS'

        original = record.levelname
        if levelname in COLORS:
            record.levelname = f"{COLORS[levelname]}[{levelname}]{RESET}"
        else:
            record.levelname = f"[{levelname}]"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(debug_mode=False, log_file=None):
    """Setup logging configuration"""
    level = logging.DEBUG if debug_mode else logging.INFO

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(ColorFormatter('%(levelname)s %(message)s'))
    handlers = [stream_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s: %(message)s',
            datefmt='%H:%M:%S',
        ))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    return logging.getLogger('nompac')
