import logging
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", *, log_format: str = DEFAULT_FORMAT, log_file: Optional[str] = None):
    """
    Configures root logging for the service and the console client.
    """
    logging.basicConfig(level=level.upper(), format=log_format)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    return logging.getLogger("sakanka")
