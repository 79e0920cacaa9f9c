import inspect
import logging
from pprint import pformat
from typing import Any

from pydantic import BaseModel

DEFAULT_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"


class PprintLogger:
    """A logger wrapper that pretty-prints dicts and pydantic models.

    Export and import runs log structured summaries (``{"message": ...,
    "entity": ..., "records": ...}``); this wrapper keeps them readable
    without every call site formatting by hand.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _format_message(self, msg: Any, pprint: bool = True) -> str:
        if not pprint or isinstance(msg, str):
            return str(msg)
        if isinstance(msg, BaseModel):
            return msg.model_dump_json(indent=2)
        return pformat(msg, width=120, depth=None)

    def _log(self, level: int, msg: Any, args: tuple, pprint: bool, kwargs: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        formatted_msg = self._format_message(msg, pprint=pprint)
        self._logger.log(level, formatted_msg, *args, stacklevel=3, **kwargs)

    def debug(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.DEBUG, msg, args, pprint, kwargs)

    def info(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.INFO, msg, args, pprint, kwargs)

    def warning(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.WARNING, msg, args, pprint, kwargs)

    def error(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        self._log(logging.ERROR, msg, args, pprint, kwargs)

    def exception(self, msg: Any, *args, pprint: bool = True, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, args, pprint, kwargs)

    def __getattr__(self, name: str) -> Any:
        """Delegate any other attributes to the underlying logger."""
        return getattr(self._logger, name)


def setup_logging(name: str | None = None, level: int | str | None = None) -> PprintLogger:
    """Return a PprintLogger for `name` (default: the calling module).

    A stream handler is attached to the top-level ``graphport`` logger the
    first time any graphport logger is set up, so applications that
    configure logging themselves still see a single line per record.
    """
    if name is None:
        frame = inspect.currentframe().f_back  # type: ignore[union-attr]
        name = frame.f_globals.get("__name__", "graphport")  # type: ignore[union-attr]
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)

    root = logging.getLogger("graphport")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(handler)
    return PprintLogger(logger)
