import json

import httpx
import pytest

from braindump.classifier import LLMClassifier, RuleBasedClassifier, build_oracle, categorize
from braindump.config import get_default_config
from braindump.errors import OracleTimeoutError, OracleUnavailableError, ResponseParseError
from braindump.models import Category, ClassificationRequest
from braindump.validator import parse_response

from conftest import ANCHOR


def make_request(*fragments):
    return ClassificationRequest(
        new_input_text=" ".join(fragments),
        anchor_date=ANCHOR,
        fragments=list(fragments),
        contract="CONTRACT TEXT",
    )


def make_config(provider="anthropic", **llm):
    config = get_default_config()
    config["llm"].update({"provider": provider, "retry_backoff": 0, **llm})
    if provider == "openai":
        config["llm"]["model"] = "gpt-4o-mini"
    config["organizer"]["timeout_seconds"] = 5.0
    return config


ANTHROPIC_OK = {"content": [{"type": "text", "text": '```json\n{"Do": [{"item": "Call mom"}]}\n```'}]}
OPENAI_OK = {"choices": [{"message": {"content": '{"Plan": [{"item": "Learn Spanish"}]}'}}]}


@pytest.mark.parametrize("text, dated, expected", [
    ("Buy milk", False, Category.SHOPPING_LIST),
    ("Buy flowers tomorrow", True, Category.SHOPPING_LIST),
    ("Mom's birthday", False, Category.IMPORTANT_DATES_EVENTS),
    ("Dentist tomorrow", True, Category.DO),
    ("Research trip to Japan", False, Category.PLAN),
    ("Idea: a podcast about maps", False, Category.THINK),
    ("Call mom", False, Category.DO),
])
def test_categorize(text, dated, expected):
    assert categorize(text, dated) == expected


def test_keywords_match_whole_words_only():
    assert categorize("Email the buyer", False) == Category.DO


def test_rule_based_reply_passes_validation():
    request = make_request("Dentist tomorrow 3pm", "Buy milk", "Gym every week on Friday", "Learn Spanish")
    parsed = parse_response(RuleBasedClassifier().classify(request), ANCHOR)

    dentist = parsed[Category.DO][0]
    assert dentist.item == "Dentist tomorrow 3pm"
    assert dentist.date.isoformat() == "2025-01-14"
    assert dentist.time == "15:00"
    assert [i.item for i in parsed[Category.SHOPPING_LIST]] == ["Buy milk"]
    gym = [i for i in parsed[Category.DO] if i.item.startswith("Gym")][0]
    assert gym.recurrence == "weekly"
    assert gym.date.isoformat() == "2025-01-17"
    assert [i.item for i in parsed[Category.PLAN]] == ["Learn Spanish"]


def test_rule_based_collapses_repeated_fragments():
    request = make_request("Dentist tomorrow 3pm", "dentist  tomorrow 3PM")
    parsed = parse_response(RuleBasedClassifier().classify(request), ANCHOR)
    assert len(parsed[Category.DO]) == 1


def test_rule_based_falls_back_to_joined_text():
    request = ClassificationRequest(new_input_text="Call mom", anchor_date=ANCHOR)
    parsed = parse_response(RuleBasedClassifier().classify(request), ANCHOR)
    assert [i.item for i in parsed[Category.DO]] == ["Call mom"]


def test_anthropic_request_and_reply():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=ANTHROPIC_OK)

    config = make_config(anthropic_api_key="sk-test")
    oracle = LLMClassifier(config, transport=httpx.MockTransport(handler))

    reply = oracle.classify(make_request("Call mom"))

    assert "Call mom" in reply
    sent = seen[0]
    assert sent.url == "https://api.anthropic.com/v1/messages"
    assert sent.headers["x-api-key"] == "sk-test"
    assert sent.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(sent.content)
    assert body["messages"][0]["content"] == "CONTRACT TEXT"


def test_openai_request_and_reply():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=OPENAI_OK)

    config = make_config("openai", openai_api_key="sk-openai")
    oracle = LLMClassifier(config, transport=httpx.MockTransport(handler))

    reply = oracle.classify(make_request("Learn Spanish"))

    assert json.loads(reply) == {"Plan": [{"item": "Learn Spanish"}]}
    assert seen[0].url == "https://api.openai.com/v1/chat/completions"
    assert seen[0].headers["authorization"] == "Bearer sk-openai"
    assert json.loads(seen[0].content)["model"] == "gpt-4o-mini"


def test_contract_is_built_when_request_has_none():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=ANTHROPIC_OK)

    oracle = LLMClassifier(make_config(anthropic_api_key="k"), transport=httpx.MockTransport(handler))
    oracle.classify(ClassificationRequest(new_input_text="Call mom", anchor_date=ANCHOR))

    assert "Use 2025-01-13 as the current date" in seen[0]["messages"][0]["content"]


def test_transport_timeout_maps_to_oracle_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    oracle = LLMClassifier(make_config(anthropic_api_key="k"), transport=httpx.MockTransport(handler))
    with pytest.raises(OracleTimeoutError):
        oracle.classify(make_request("Call mom"))


def test_connection_error_maps_to_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    oracle = LLMClassifier(make_config(anthropic_api_key="k"), transport=httpx.MockTransport(handler))
    with pytest.raises(OracleUnavailableError):
        oracle.classify(make_request("Call mom"))


def test_server_error_maps_to_unavailable():
    oracle = LLMClassifier(
        make_config(anthropic_api_key="k"),
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
    )
    with pytest.raises(OracleUnavailableError):
        oracle.classify(make_request("Call mom"))


def test_rate_limit_is_retried():
    responses = iter([httpx.Response(429), httpx.Response(200, json=ANTHROPIC_OK)])
    oracle = LLMClassifier(
        make_config(anthropic_api_key="k"),
        transport=httpx.MockTransport(lambda request: next(responses)),
    )
    assert "Call mom" in oracle.classify(make_request("Call mom"))


def test_rate_limit_gives_up_after_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    oracle = LLMClassifier(
        make_config(anthropic_api_key="k", max_retries=1),
        transport=httpx.MockTransport(handler),
    )
    with pytest.raises(OracleUnavailableError):
        oracle.classify(make_request("Call mom"))
    assert len(calls) == 2


def test_unexpected_payload_is_a_parse_error():
    oracle = LLMClassifier(
        make_config(anthropic_api_key="k"),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"content": []})),
    )
    with pytest.raises(ResponseParseError):
        oracle.classify(make_request("Call mom"))


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(ValueError):
        LLMClassifier(make_config())


def test_unknown_provider_raises():
    with pytest.raises(ValueError):
        LLMClassifier(make_config("carrier-pigeon"))


def test_build_oracle_by_name():
    assert isinstance(build_oracle(get_default_config(), "rules"), RuleBasedClassifier)
    config = get_default_config()
    config["organizer"]["classifier"] = "rules"
    assert build_oracle(config).name == "rules"
    with pytest.raises(ValueError):
        build_oracle(config, "crystal-ball")
