"""两步协议的上游请求/响应结构。

使用 pydantic 模型代替松散的 dict：字段类型错误会在构造请求时暴露，
而不是在网络往返之后才由上游报错。
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class TalkRequest(BaseModel):
    """第一步：创建对话。"""

    model_config = ConfigDict(extra="forbid", strict=True)

    model: str = Field(min_length=1)


class TalkResponse(BaseModel):
    """第一步的响应，只关心会话 ID 与回显的模型名。"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    model: str = ""


class MessageRequest(BaseModel):
    """第二步：向 {base}/{talk_id}/message 发送内容。"""

    model_config = ConfigDict(extra="forbid", strict=True)

    content: str
    model: str = Field(min_length=1)
    stream: bool = False


class ModelEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)


class ModelList(BaseModel):
    """模型列表端点的响应（OpenAI 风格 {"data": [{"id": ...}]}）。"""

    model_config = ConfigDict(extra="ignore")

    data: List[ModelEntry] = Field(default_factory=list)
