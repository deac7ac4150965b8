import json

import pytest

from chatrelay.config.settings import Settings
from chatrelay.core.errors import BadRequestError
from chatrelay.core.normalize import build_upstream_payload, parse_body


def _settings(**overrides) -> Settings:
    return Settings(log_file="").model_copy(update=overrides)


def _normalize(body: dict, **overrides) -> dict:
    inbound = parse_body(json.dumps(body).encode("utf-8"))
    return build_upstream_payload(inbound, _settings(**overrides)).to_upstream_json()


def test_messages_without_system_pass_through_unchanged():
    messages = [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": [{"type": "text", "text": "and now?"}]},
    ]
    payload = _normalize({"messages": messages, "stream": False})
    assert payload["messages"] == messages


def test_system_is_prepended_as_leading_message():
    messages = [{"role": "user", "content": "a"}, {"role": "user", "content": "b"}]
    payload = _normalize({"messages": messages, "system": "be brief"})
    assert payload["messages"] == [{"role": "system", "content": "be brief"}, *messages]


def test_empty_system_is_not_prepended():
    payload = _normalize({"messages": [{"role": "user", "content": "a"}], "system": ""})
    assert payload["messages"] == [{"role": "user", "content": "a"}]


def test_defaults_applied_when_fields_absent():
    payload = _normalize({"messages": []})
    assert payload == {"model": "gpt-4o-mini", "temperature": 0.7, "stream": True, "messages": []}


def test_defaults_follow_settings():
    payload = _normalize({}, default_model="gpt-test", default_temperature=0.2, default_stream=False)
    assert payload["model"] == "gpt-test"
    assert payload["temperature"] == 0.2
    assert payload["stream"] is False


def test_explicit_fields_override_defaults():
    payload = _normalize({"model": "gpt-4o", "temperature": 0, "stream": False})
    assert payload["model"] == "gpt-4o"
    assert payload["temperature"] == 0
    assert payload["stream"] is False


def test_extra_message_keys_are_preserved():
    message = {"role": "assistant", "content": None, "tool_calls": [{"id": "t1", "type": "function"}], "name": "bot"}
    payload = _normalize({"messages": [message]})
    assert payload["messages"] == [message]


def test_prompt_fallback_when_messages_absent():
    payload = _normalize({"prompt": "hello", "system": "sys"})
    assert payload["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hello"},
    ]


def test_input_fallback_ignores_non_string_input():
    assert _normalize({"input": "hey"})["messages"] == [{"role": "user", "content": "hey"}]
    assert _normalize({"input": [{"role": "user"}]})["messages"] == []


def test_messages_take_precedence_over_prompt():
    payload = _normalize({"messages": [{"role": "user", "content": "m"}], "prompt": "p"})
    assert payload["messages"] == [{"role": "user", "content": "m"}]


def test_empty_body_is_treated_as_empty_object():
    inbound = parse_body(b"")
    assert inbound.messages is None
    assert inbound.stream is None


@pytest.mark.parametrize("raw", [b"{not json", b'{"messages": [', b"nul"])
def test_invalid_json_raises_bad_request(raw):
    with pytest.raises(BadRequestError) as exc_info:
        parse_body(raw)
    assert exc_info.value.detail == "invalid JSON"


def test_non_object_body_raises_bad_request():
    with pytest.raises(BadRequestError):
        parse_body(b'[{"role": "user"}]')


def test_wrong_field_type_raises_bad_request():
    with pytest.raises(BadRequestError) as exc_info:
        parse_body(b'{"messages": "hello"}')
    assert "messages" in exc_info.value.detail


@pytest.mark.parametrize("flag", ['"false"', '"true"', "1", "0"])
def test_stream_flag_must_be_a_json_boolean(flag):
    with pytest.raises(BadRequestError) as exc_info:
        parse_body(f'{{"stream": {flag}}}'.encode("utf-8"))
    assert exc_info.value.detail == "invalid field stream"


def test_explicit_empty_model_is_not_replaced_by_default():
    assert _normalize({"model": ""})["model"] == ""
    assert _normalize({"model": None})["model"] == "gpt-4o-mini"
