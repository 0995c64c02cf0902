import logging
from config import config

def setup_logging():
    """
    Configure logging level based on debug mode setting.
    Non-debug mode uses WARNING level to minimize console output.
    Debug modes use INFO level so session transitions and rewards are traceable.
    """
    if config.debug_mode == "non_debug":
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    return logging.getLogger("workout_engine")


def apply_log_level():
    """Re-apply the level after the debug mode changed on the command line."""
    level = logging.WARNING if config.debug_mode == "non_debug" else logging.INFO
    logger.setLevel(level)

# Global logger instance - import this in other modules
logger = setup_logging()
