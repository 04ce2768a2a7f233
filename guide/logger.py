import logging
import os

import colorlog

_configured = False


def _configure_root(level: str) -> None:
    global _configured
    if _configured:
        return

    root_logger = logging.getLogger("guide")
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    color_formatter = colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s %(module)s %(levelname)-8s: %(message)s%(reset)s",
        datefmt='%Y-%m-%d %H:%M:%S',
        reset=True,
        log_colors={
            'DEBUG':    'cyan',
            'INFO':     'green',
            'WARNING':  'yellow',
            'ERROR':    'red',
            'CRITICAL': 'red,bg_white',
        },
        style='%'
    )
    console_handler.setFormatter(color_formatter)
    root_logger.addHandler(console_handler)

    # HTTP client libraries log every request at INFO
    for library in ['httpx', 'httpcore', 'urllib3', 'asyncio']:
        library_logger = logging.getLogger(library)
        library_logger.setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a child of the ``guide`` logger, configuring the console handler once."""
    _configure_root(os.getenv("LOG_LEVEL", "INFO").upper())
    if not name.startswith("guide"):
        name = f"guide.{name}"
    return logging.getLogger(name)
