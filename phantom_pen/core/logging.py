import logging

from phantom_pen.core.config import settings

_FORMAT = logging.Formatter(
    "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def get_logger(name: str = "phantom_pen") -> logging.Logger:
    """
    Return a logger that writes to the console and, when LOG_FILE is set, to a file.
    Avoids adding duplicate handlers on repeated imports.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger  # avoid duplicate handlers

    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(_FORMAT)
    logger.addHandler(ch)

    if settings.LOG_FILE:
        fh = logging.FileHandler(settings.LOG_FILE, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(_FORMAT)
        logger.addHandler(fh)

    return logger
