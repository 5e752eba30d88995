"""zread.ai 第二步响应的事件流解析。

上游的 text/event-stream 形如：

    event:answer
    data:{"id": "...", "text": "你好"}

    event:finish
    data:{}

这里只关心 answer 事件里的 text 字段，遇到 finish 即结束。
"""

import json
from typing import Iterable, Iterator, Optional

from chat_bridge.infrastructure.logging.logger import logger


ANSWER_EVENT = "answer"
FINISH_EVENT = "finish"


def _field(line: str, name: str) -> Optional[str]:
    prefix = f"{name}:"
    if line.startswith(prefix):
        return line[len(prefix):].strip()
    return None


def iter_answer_texts(lines: Iterable[str]) -> Iterator[str]:
    """逐行解析事件流，依次产出 answer 事件中的非空 text。"""

    event: Optional[str] = None
    for raw in lines:
        line = raw.strip()
        if not line:
            # 空行是事件分隔符
            event = None
            continue
        name = _field(line, "event")
        if name is not None:
            event = name
            if event == FINISH_EVENT:
                return
            continue
        data = _field(line, "data")
        if data is None or event != ANSWER_EVENT:
            continue
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("events.unparsable_data", extra={"extra": {"size": len(data)}})
            continue
        if isinstance(payload, dict):
            text = payload.get("text")
            if isinstance(text, str) and text:
                yield text


def collect_answer(body: str) -> str:
    """把非流式响应体还原为完整回答。

    优先按事件流拼接 answer 文本；没有时按 JSON 取 content/response 字段；
    都取不到则原样返回响应体。
    """

    content = "".join(iter_answer_texts(body.splitlines()))
    if content:
        return content
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body
    if isinstance(data, dict):
        for key in ("content", "response"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return body
