import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO


TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
JSON_FORMAT = "%(levelname)s:     %(message)s"


def build_logger(name: str, *, verbose: bool = False, json_lines: bool = False,
                 stream: Optional[TextIO] = None) -> logging.Logger:
    """Return a standalone logger writing to ``stream`` (stderr by default).

    The logger is created directly rather than through ``logging.getLogger``
    so it is not shared with the rest of the process.
    """
    logger = logging.Logger(name)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    handler = logging.StreamHandler(stream=stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(JSON_FORMAT if json_lines else TEXT_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def _render(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


class Logger:
    """Light wrapper that supports structured key/value logs.

    Verbosity and rendering are fixed when the handle is constructed:
      - verbose=True lowers the level to DEBUG
      - json_lines=True emits one JSON object per line
    """

    def __init__(self, name: str = "retail-predictions", *, verbose: bool = False,
                 json_lines: bool = False, stream: Optional[TextIO] = None):
        self._json = json_lines
        self._log = build_logger(name, verbose=verbose, json_lines=json_lines, stream=stream)

    def _emit(self, level: str, msg: str, **kv):
        levelno = getattr(logging, level.upper(), logging.INFO)
        if not self._log.isEnabledFor(levelno):
            return
        if self._json:
            payload = {
                "ts": datetime.now(timezone.utc).isoformat(),
                "event": msg,
            }
            if kv:
                payload.update(kv)
            self._log.log(levelno, json.dumps(payload, ensure_ascii=False, default=str))
        else:
            if kv:
                kv_str = " ".join(f"{k}={_render(v)}" for k, v in kv.items())
                self._log.log(levelno, f"{msg} | {kv_str}")
            else:
                self._log.log(levelno, msg)

    def info(self, msg: str, **kv):
        self._emit("INFO", msg, **kv)

    def warning(self, msg: str, **kv):
        self._emit("WARNING", msg, **kv)

    def error(self, msg: str, **kv):
        self._emit("ERROR", msg, **kv)

    def debug(self, msg: str, **kv):
        self._emit("DEBUG", msg, **kv)
