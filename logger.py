import logging
import sys

def setup_logger(name: str = "conflictsim", level_name: str = "INFO"):
    """Configure standard logger with configurable level."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL
    }
    level = level_map.get(level_name.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Module loggers (logging.getLogger(__name__)) reach the handler through the root
    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_conflictsim", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s', datefmt='%H:%M:%S')
        handler.setFormatter(formatter)
        handler._conflictsim = True
        root.addHandler(handler)

    return logger
