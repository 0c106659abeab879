"""Per-run logger: console output plus an optional timestamped log file."""

from __future__ import annotations

import datetime as dt
import logging
import sys
from pathlib import Path
from typing import IO, Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def _utc_stamp() -> str:
    return dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%SZ")


class RunLog:
    """Logger whose lifetime is one benchmark run.

    Each instance owns a private, unregistered ``logging.Logger`` so that
    concurrent instances (e.g. in tests) never share handlers. ``close`` flushes
    and detaches everything it attached.
    """

    def __init__(
        self,
        log_dir: str | Path | None = None,
        *,
        level: int = logging.INFO,
        stream: IO[str] | None = None,
        name: str = "schedulermark.run",
    ) -> None:
        # Not registered with the logging manager, so it is released after the run.
        self.logger = logging.Logger(name, level)
        self.logger.propagate = False
        self.path: Path | None = None

        formatter = logging.Formatter(LOG_FORMAT)

        console = logging.StreamHandler(stream=stream if stream is not None else sys.stderr)
        console.setFormatter(formatter)
        self.logger.addHandler(console)

        if log_dir is not None:
            directory = Path(log_dir)
            directory.mkdir(parents=True, exist_ok=True)
            self.path = directory / f"run-{_utc_stamp()}.log"
            file_handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def info(self, msg: str, *args: Any) -> None:
        self.logger.info(msg, *args)

    def warning(self, msg: str, *args: Any) -> None:
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args: Any) -> None:
        self.logger.error(msg, *args)

    def exception(self, msg: str, *args: Any) -> None:
        self.logger.exception(msg, *args)

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            handler.flush()
            self.logger.removeHandler(handler)
            # The console stream belongs to the caller.
            if isinstance(handler, logging.FileHandler):
                handler.close()

    def __enter__(self) -> "RunLog":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
