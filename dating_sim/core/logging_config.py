import logging
from logging.handlers import RotatingFileHandler
import os

class ColorFormatter(logging.Formatter):
    COLOR_CODES = {
        logging.DEBUG: '\033[36m',    # Cyan
        logging.INFO: '\033[32m',     # Green
        logging.WARNING: '\033[33m',  # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[31;1m' # Bold Red
    }
    RESET_CODE = '\033[0m'

    def format(self, record):
        filename = os.path.basename(record.pathname)
        func_info = f":{record.funcName}()" if record.funcName and record.funcName != "<module>" else ""

        color = self.COLOR_CODES.get(record.levelno, '')
        message = super().format(record)
        return f"{color}{record.levelname:<8} {filename}{func_info} | {message}{self.RESET_CODE}"

_configured = False

def setup_logging(level: str = "INFO", log_file: str = "app.log"):
    """Configure logging for the application. Safe to call more than once."""
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured:
        return

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,
            backupCount=3
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(filename)s:%(funcName)-15s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))
        root.addHandler(file_handler)

    # Apply color formatter to console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter())
    root.addHandler(console_handler)

    # Reduce uvicorn noise
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    _configured = True
