"""Process-wide logging setup shared by the CLI and the web app.

Records go to stderr and, when ``DEBT_PLANNER_LOG_FILE`` is set, are also
appended to that file.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Library loggers kept at these levels whatever the planner level is
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "werkzeug": logging.INFO,
}


def configure_logging(level: str = "INFO", file_path: Optional[str] = None) -> None:
    planner_level = logging.getLevelName((level or "INFO").upper())
    if not isinstance(planner_level, int):
        planner_level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if file_path:
        log_file = Path(file_path).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    # force: the web app and the CLI can both configure within one process
    logging.basicConfig(level=planner_level, format=LOG_FORMAT, handlers=handlers, force=True)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
