import json

import httpx
import pytest

from chat_bridge.api.service import ChatService
from chat_bridge.config.platform import detect_platform
from chat_bridge.config.settings import Settings
from chat_bridge.domain.exceptions import ConfigurationError, UpstreamStatusError
from chat_bridge.domain.models import ChatMessage, ChatRequest


SSE_BODY = (
    'event:answer\ndata:{"text": "Hel"}\n\n'
    'event:answer\ndata:{"text": "lo"}\n\n'
    "event:finish\ndata:{}\n\n"
)


def make_service(handler, **env):
    settings = Settings(_env_file=None, upstream_token="tok")
    platform = detect_platform({"PLATFORM_ID": "zread", **env})
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ChatService(settings, platform=platform, client=client)


class Upstream:
    def __init__(self, message_status=200):
        self.calls = []
        self.message_status = message_status

    def __call__(self, request):
        self.calls.append(request)
        if request.url.path.endswith("/message"):
            return httpx.Response(
                self.message_status,
                headers={"content-type": "text/event-stream"},
                content=SSE_BODY.encode("utf-8"),
            )
        return httpx.Response(200, json={"id": "t1", "model": "glm-4.5"})


def test_complete_decodes_answer_and_maps_model():
    upstream = Upstream()
    service = make_service(upstream, UPSTREAM_MODEL_ID_MAP='{"fast": "glm-4.5-air"}')
    req = ChatRequest(model="fast", messages=[ChatMessage(role="user", content="hi")])
    res = service.complete(req)
    assert res.provider == "zread"
    assert res.model == "fast"
    assert res.choices[0].message.content == "Hello"
    assert res.choices[0].finish_reason == "stop"
    assert json.loads(upstream.calls[1].content)["model"] == "glm-4.5-air"


def test_unknown_model_falls_back_to_platform_default():
    upstream = Upstream()
    service = make_service(upstream)
    service.complete(ChatRequest(model="gpt-4", messages=[ChatMessage(role="user", content="hi")]))
    assert json.loads(upstream.calls[1].content)["model"] == "glm-4.5"


def test_stream_yields_deltas_then_stop():
    upstream = Upstream()
    service = make_service(upstream)
    req = ChatRequest(model="glm-4.5", messages=[ChatMessage(role="user", content="hi")], stream=True)
    chunks = list(service.stream(req))
    assert [c.choices[0].delta.content for c in chunks] == ["Hel", "lo", ""]
    assert chunks[-1].choices[0].finish_reason == "stop"
    assert upstream.calls[1].headers["accept"] == "text/event-stream"


def test_errors_propagate_and_are_recorded():
    service = make_service(Upstream(message_status=401))
    req = ChatRequest(model="glm-4.5", messages=[ChatMessage(role="user", content="hi")])
    with pytest.raises(UpstreamStatusError) as exc:
        service.complete(req)
    assert exc.value.status == 401
    (entry,) = service.recent_requests()
    assert entry.status == 401


def test_missing_token():
    settings = Settings(_env_file=None, upstream_token="")
    with pytest.raises(ConfigurationError) as exc:
        ChatService(settings, platform=detect_platform({"PLATFORM_ID": "zread"}))
    assert exc.value.code == "MISSING_TOKEN"


def test_missing_token_is_a_configuration_error():
    settings = Settings(_env_file=None, upstream_token=None)
    with pytest.raises(ConfigurationError) as exc:
        ChatService(settings, platform=detect_platform({"PLATFORM_ID": "zread"}))
    assert exc.value.http_status == 500
    assert exc.value.phase is None
