from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Root logger setup shared by both pages.

    Streamlit reruns the page script on every interaction; basicConfig is a
    no-op once a handler is installed, so repeated calls only adjust the level.
    """
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logging.getLogger("studydocs").setLevel(getattr(logging, str(level).upper(), logging.INFO))
    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
