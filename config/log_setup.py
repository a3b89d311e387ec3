import logging
from pathlib import Path
from typing import Optional, Union


def setup_logging(level: Union[int, str] = logging.INFO, log_path: Optional[Path] = None) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    # Remove existing handlers
    root.handlers = []

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root.addHandler(console)

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(file_handler)

    logging.debug("Logging initialized: level=%s, file=%s", logging.getLevelName(level), log_path)
