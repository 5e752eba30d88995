import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from chat_bridge.config.settings import settings

# 结构化字段里可能带有用户内容或上游响应体的键
SENSITIVE_KEYS = ("content", "body", "token")


class JsonFormatter(logging.Formatter):
    """每条记录一行 JSON；redact_content 时截断敏感字段，事件名本身不动。"""

    def __init__(self, redact_content: bool = False, max_chars: int = 64):
        super().__init__()
        self._redact = redact_content
        self._max_chars = max_chars

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "event": record.getMessage(),
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            for key, value in extra.items():
                payload[key] = self._redact_value(key, value)
        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
        return json.dumps(payload, ensure_ascii=False, default=str)

    def _redact_value(self, key: str, value):
        if not self._redact or key not in SENSITIVE_KEYS or not isinstance(value, str):
            return value
        if len(value) <= self._max_chars:
            return value
        return value[: self._max_chars] + "..."


def setup_logger(log_dir: str = settings.log_dir, redact_content: bool = settings.log_redact_content) -> logging.Logger:
    logger = logging.getLogger("chat_bridge")
    logger.setLevel(logging.INFO)
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    target = (path / "bridge.log").resolve()
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == target:
            return logger
    fh = logging.FileHandler(target, encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter(redact_content))
    logger.addHandler(fh)
    return logger


logger = setup_logger()
