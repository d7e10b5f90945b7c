import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logger(level="INFO"):
    logger = logging.getLogger()
    logger.propagate = False

    # logger is singleton so clear handlers and set level to prevent duplicate logs
    logger.handlers.clear()
    logger.setLevel(
        level if isinstance(level, int) else logging.getLevelName(str(level).upper())
    )
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    # urllib3 logs every connection at DEBUG, including ones we already log
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger
