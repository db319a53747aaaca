import logging
import warnings

logger = logging.getLogger(__name__)

# How a failed check is reported: silently, as a log record, as a warning, or raised.
ERROR_MODES = ("none", "info", "warn", "error")


def check_error_mode(mode: str) -> str:
    if mode not in ERROR_MODES:
        raise ValueError(f"Unknown error mode '{mode}'. Available: {', '.join(ERROR_MODES)}")
    return mode


def report(error: Exception, mode: str = "none") -> bool:
    """
    Report `error` according to `mode` and return False.

    "error" raises `error`, "warn" issues a RuntimeWarning, "info" logs it.
    Any other mode, including "none", stays silent.
    """
    if mode == "error":
        raise error
    if mode == "warn":
        warnings.warn(str(error), RuntimeWarning, stacklevel=3)
    elif mode == "info":
        logger.info("%s", error)
    return False
