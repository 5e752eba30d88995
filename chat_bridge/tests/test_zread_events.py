from chat_bridge.providers.zread_events import collect_answer, iter_answer_texts


SSE_BODY = "\n".join(
    [
        "event:start",
        'data:{"id": "m1"}',
        "",
        "event:answer",
        'data:{"id": "m1", "text": "你"}',
        "",
        "event:answer",
        "data:{broken",
        "",
        "event:answer",
        'data:{"id": "m1", "text": ""}',
        "",
        "event:answer",
        'data: {"id": "m1", "text": "好"}',
        "",
        "event:finish",
        "data:{}",
        "",
        "event:answer",
        'data:{"text": "ignored after finish"}',
    ]
)


def test_iter_answer_texts_follows_events():
    assert list(iter_answer_texts(SSE_BODY.splitlines())) == ["你", "好"]


def test_data_without_answer_event_is_ignored():
    lines = ['data:{"text": "orphan"}', "event:answer", 'data:{"text": "ok"}']
    assert list(iter_answer_texts(lines)) == ["ok"]


def test_collect_answer_from_event_stream():
    assert collect_answer(SSE_BODY) == "你好"


def test_collect_answer_json_fallbacks():
    assert collect_answer('{"content": "from content"}') == "from content"
    assert collect_answer('{"response": "from response"}') == "from response"
    assert collect_answer('{"other": 1}') == '{"other": 1}'
    assert collect_answer("plain text") == "plain text"
