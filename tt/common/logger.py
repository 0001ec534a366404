import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from tt.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attaches the handler built by `factory` unless a handler with that name is already on the logger. Keeps
# get_logger() idempotent when several modules ask for the same logger.
def _attach(logger: logging.Logger, handler_name: str, level, fmt: logging.Formatter, factory):
    if any(h.get_name() == handler_name for h in logger.handlers):
        return None
    handler = factory()
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.set_name(handler_name)
    logger.addHandler(handler)
    return handler

# Keeps only the newest `keep` historical debug logs for this logger name.
def _prune_debug_runs(debug_dir: Path, name: str, keep: int):
    runs = sorted(debug_dir.glob(f"{name}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
    for run in runs[keep:]:
        try: run.unlink()
        except OSError: pass

def get_logger(
        name = "tasktimer",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 5 * 1024 * 1024,
        backup_count = 5,
        persistent = True,
        console = False,
        historical_debugs: int = 10
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(min(level, logging.DEBUG) if historical_debugs > 0 else level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    # Rotating log that survives across runs
    if persistent:
        _attach(logger, f"{name}:persistent", level, fmt, lambda: RotatingFileHandler(
            filename=log_dir / f"{name}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ))

    # Latest-only log, overwritten each run
    _attach(logger, f"{name}:latest", level, fmt,
            lambda: logging.FileHandler(log_dir / "latest.log", mode="w", encoding="utf-8"))

    # Full DEBUG log per run. Tick and checkpoint chatter only lands here.
    if historical_debugs > 0:
        debug_dir = log_dir / "debug"
        debug_dir.mkdir(parents=True,exist_ok=True)
        run_path = debug_dir / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
        if _attach(logger, f"{name}:historical_debug", logging.DEBUG, fmt,
                   lambda: logging.FileHandler(run_path, encoding="utf-8")) is not None:
            _prune_debug_runs(debug_dir, name, historical_debugs)

    if console:
        _attach(logger, f"{name}:console", level, fmt, logging.StreamHandler)

    return logger

# TASKTIMER_LOG_LEVEL=DEBUG mirrors debug output into the persistent and latest logs as well.
_LEVEL = logging.getLevelName(os.getenv("TASKTIMER_LOG_LEVEL", "INFO").upper())
log = get_logger(level=_LEVEL if isinstance(_LEVEL, int) else logging.INFO,
                 console=bool(os.getenv("TASKTIMER_LOG_CONSOLE")),
                 historical_debugs=10)
log.info("=== INITIALIZED NEW SESSION ===")
