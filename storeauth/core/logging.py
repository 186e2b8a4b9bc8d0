"""Logger lookup and log-safe formatting helpers."""

import logging


def get_logger(name: str) -> logging.Logger:
    """Return the named storeauth logger.
    
    Records always propagate to the root logger, so an application that
    calls logging.basicConfig() or the CLI's --verbose flag sees them
    without extra wiring. Until the root logger has a handler the logger
    stays at WARNING, keeping sign-in chatter out of library users' output.
    
    Args:
        name: Dotted logger name, e.g. 'storeauth.store'
        
    Returns:
        The logger
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    
    if not logging.getLogger().handlers:
        logger.setLevel(logging.WARNING)
    
    return logger


def mask(value: str, keep: int = 20) -> str:
    """Truncate a secret-ish value for log output."""
    if not value:
        return '(empty)'
    if len(value) <= keep:
        return value
    return f"{value[:keep]}..."
