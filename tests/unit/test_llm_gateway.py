import httpx
import pytest

from config.registry import TEXTGEN_KEY, bind_model
from config.routes import LlmRoute
from config.settings import Settings
from llm_gateway import (
    CallableTextGenerator,
    Generation,
    LlmGatewayError,
    LlmTextGenerator,
    build_generator,
    call,
    resolve_generator,
    safe_generate,
    strip_code_fences,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, raise_json=False):
        self.status_code = status_code
        self._payload = payload
        self._raise_json = raise_json
        self.text = str(payload)

    def json(self):
        if self._raise_json:
            raise ValueError("not json")
        return self._payload


class FakeClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, *, json, headers, timeout):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _route(**overrides):
    values = {
        "name": "test",
        "base_url": "http://llm.local",
        "endpoint": "/v1/chat/completions",
        "model": "m1",
        "timeout_s": 5.0,
        "api_key": "secret",
    }
    values.update(overrides)
    return LlmRoute(**values)


def _ok(content):
    return FakeResponse(payload={"choices": [{"message": {"content": content}}]})


def test_call_builds_openai_payload():
    client = FakeClient(_ok("hello"))
    assert call("Hi there", cfg=_route(temperature=0.2, max_tokens=50), client=client) == "hello"

    sent = client.calls[0]
    assert sent["url"] == "http://llm.local/v1/chat/completions"
    assert sent["json"]["model"] == "m1"
    assert sent["json"]["messages"] == [{"role": "user", "content": "Hi there"}]
    assert sent["json"]["temperature"] == 0.2
    assert sent["json"]["max_tokens"] == 50
    assert sent["headers"]["Authorization"] == "Bearer secret"
    assert sent["timeout"] == 5.0


def test_api_key_read_from_named_env(monkeypatch):
    monkeypatch.setenv("CUSTOM_KEY", "from-env")
    client = FakeClient(_ok("x"))
    call("p", cfg=_route(api_key=None, api_key_env="CUSTOM_KEY"), client=client)
    assert client.calls[0]["headers"]["Authorization"] == "Bearer from-env"


@pytest.mark.parametrize(
    "client",
    [
        FakeClient(error=httpx.ConnectError("refused")),
        FakeClient(FakeResponse(status_code=503, payload={})),
        FakeClient(FakeResponse(raise_json=True)),
        FakeClient(FakeResponse(payload={"choices": []})),
    ],
)
def test_call_raises_gateway_error(client):
    with pytest.raises(LlmGatewayError):
        call("p", cfg=_route(), client=client)


def test_generator_wraps_failures():
    generator = LlmTextGenerator(_route(), client=FakeClient(FakeResponse(status_code=500, payload={})))
    result = generator.generate("prompt")
    assert result.success is False
    assert "500" in result.error


def test_generator_strips_fences_and_rejects_empty_prompt():
    generator = LlmTextGenerator(_route(sequential=True), client=FakeClient(_ok('```json\n{"a": 1}\n```')))
    assert generator.available is True
    assert generator.generate("p") == Generation(success=True, content='{"a": 1}')
    assert generator.generate("  ").success is False


def test_strip_code_fences_leaves_plain_text():
    assert strip_code_fences("  plain  ") == "plain"
    assert strip_code_fences("```\nbody\n```") == "body"


def test_callable_generator_adapts_results():
    assert CallableTextGenerator(lambda prompt: prompt.upper()).generate("ab").content == "AB"
    assert CallableTextGenerator(lambda prompt: None).generate("ab").success is False

    def broken(prompt):
        raise RuntimeError("down")

    failed = CallableTextGenerator(broken).generate("ab")
    assert failed.success is False
    assert failed.error == "down"


def test_build_generator_requires_key():
    assert build_generator(Settings(_env_file=None, LLM_API_KEY=None)) is None
    generator = build_generator(Settings(_env_file=None, LLM_API_KEY="k", LLM_MODEL="m2"))
    assert isinstance(generator, LlmTextGenerator)
    assert generator.route.model == "m2"


def test_resolve_generator_prefers_registry_binding():
    bind_model(TEXTGEN_KEY, lambda prompt: "bound")
    generator = resolve_generator(Settings(_env_file=None, LLM_API_KEY=None))
    assert isinstance(generator, CallableTextGenerator)
    assert generator.generate("x").content == "bound"


class RaisingGenerator:
    available = True

    def generate(self, prompt):
        raise TimeoutError("read timed out")


class WrongTypeGenerator:
    available = True

    def generate(self, prompt):
        return "plain text"


def test_safe_generate_turns_exceptions_into_failures():
    failed = safe_generate(RaisingGenerator(), "prompt")
    assert failed == Generation(success=False, error="read timed out")
    assert safe_generate(WrongTypeGenerator(), "prompt").success is False
    ok = safe_generate(CallableTextGenerator(lambda prompt: "fine"), "prompt")
    assert ok == Generation(success=True, content="fine")
