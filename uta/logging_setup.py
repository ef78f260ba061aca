from __future__ import annotations

import logging
import os


def setup_logging(debug: bool) -> None:
    # progress goes through typer.echo, so the default level stays quiet
    level = logging.DEBUG if debug else logging.WARNING
    level_name = os.getenv("UTA_LOG_LEVEL")
    if level_name:
        value = getattr(logging, level_name.upper(), None)
        if isinstance(value, int):
            level = value

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # urllib3 logs full request URLs at DEBUG
    if level <= logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.INFO)
