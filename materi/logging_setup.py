from __future__ import annotations
import logging, logging.handlers
from pathlib import Path

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(settings) -> Path | None:
    """Configure root logging: console always, rotating file under LOG_DIR when set."""
    level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    fmt = logging.Formatter(_FORMAT)

    logger = logging.getLogger()  # root
    logger.setLevel(level)

    # avoid duplicate handlers on re-import (reload, tests)
    if not any(getattr(h, "_materi", False) for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        console._materi = True
        logger.addHandler(console)

    log_path = None
    if settings.LOG_DIR:
        log_dir = Path(settings.LOG_DIR).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "materi.log"
        if not any(getattr(h, "baseFilename", "").endswith("materi.log") for h in logger.handlers):
            handler = logging.handlers.RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
            handler.setFormatter(fmt)
            handler.setLevel(level)
            logger.addHandler(handler)

    # uvicorn installs its own handlers; let its records reach ours instead
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True

    return log_path
