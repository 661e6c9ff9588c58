from __future__ import annotations  # Text-generation gateway module

import logging
import os
import threading
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple

import httpx
from pydantic import BaseModel

from config import TEXTGEN_KEY, LlmRoute, Settings, find_model, route_from_settings


logger = logging.getLogger(__name__)  # Module logger setup


_MODEL_LOCKS: Dict[str, threading.Lock] = {}
_MODEL_LOCKS_GUARD = threading.Lock()


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class Generation(BaseModel):  # Outcome of one text-generation request
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None


class TextGenerator(Protocol):  # Capability consumed by evaluator, selector and reporting
    @property
    def available(self) -> bool: ...

    def generate(self, prompt: str) -> Generation: ...


def _lock_for(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _MODEL_LOCKS_GUARD:
        lock = _MODEL_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _MODEL_LOCKS[key] = lock
    return lock


def chat(
    messages: Sequence[Dict[str, str]],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> str:  # Send chat messages and return the reply text, raising LlmGatewayError on failure
    def _execute() -> str:
        input_messages = _normalize_messages(messages)
        payload: Dict[str, Any] = {
            "model": cfg.model,
            "messages": input_messages,
            "temperature": cfg.temperature,
            "max_tokens": cfg.max_tokens,
        }
        if options:
            payload.update(options)
        headers = {"Content-Type": "application/json"}
        api_key = cfg.api_key or (os.getenv(cfg.api_key_env) if cfg.api_key_env else None)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        headers.update(cfg.extra_headers)
        preview = _preview(input_messages)
        if len(preview) > 120:
            preview = preview[:117] + "..."
        logger.info("LLM request send route=%s model=%s preview=%s", cfg.name, cfg.model, preview)
        try:
            response, close_cb = _post(f"{cfg.base_url}{cfg.endpoint}", payload, headers, cfg.timeout_s, client)
        except Exception as exc:  # noqa: BLE001
            logger.error("LLM transport failure: %s", exc)
            raise LlmGatewayError("LLM transport failed") from exc
        try:
            if response.status_code >= 400:
                logger.error("LLM error status: %s", response.status_code)
                raise LlmGatewayError(f"LLM returned status {response.status_code}")
            try:
                data = response.json()
            except Exception as exc:  # noqa: BLE001
                logger.error("Invalid JSON payload from LLM: %s", exc)
                raise LlmGatewayError("LLM payload was not JSON") from exc
            content = strip_code_fences(_extract_content(data))
        finally:
            _close_safely(close_cb)
        logger.info("LLM request done route=%s model=%s chars=%d", cfg.name, cfg.model, len(content))
        return content

    if cfg.sequential:
        lock = _lock_for(cfg)
        with lock:
            return _execute()
    return _execute()


def call(
    prompt: str,
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> str:  # Single-prompt convenience wrapper around chat
    return chat([{"role": "user", "content": prompt}], cfg=cfg, client=client, options=options)


class LlmTextGenerator:  # Route-backed generator that never raises
    def __init__(self, route: LlmRoute, client: Optional[HttpClient] = None) -> None:
        self._route = route
        self._client = client

    @property
    def available(self) -> bool:
        return True

    @property
    def route(self) -> LlmRoute:
        return self._route

    def generate(self, prompt: str) -> Generation:
        if not prompt or not prompt.strip():
            return Generation(success=False, error="Empty prompt")
        try:
            content = call(prompt, cfg=self._route, client=self._client)
        except LlmGatewayError as exc:
            cause = exc.__cause__
            detail = f"{exc}: {cause}" if cause is not None else str(exc)
            return Generation(success=False, error=detail)
        return Generation(success=True, content=content)


class CallableTextGenerator:  # Adapts a bound ``fn(prompt) -> str`` into a generator
    def __init__(self, fn: Callable[[str], Any]) -> None:
        self._fn = fn

    @property
    def available(self) -> bool:
        return True

    def generate(self, prompt: str) -> Generation:
        try:
            raw = self._fn(prompt)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Bound text generator failed: %s", exc)
            return Generation(success=False, error=str(exc))
        if isinstance(raw, Generation):
            return raw
        if raw is None:
            return Generation(success=False, error="Generator returned no content")
        return Generation(success=True, content=str(raw))


def safe_generate(generator: TextGenerator, prompt: str) -> Generation:  # Turn a raising generator into a failed Generation
    try:
        result = generator.generate(prompt)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Text generator raised: %s", exc)
        return Generation(success=False, error=str(exc) or type(exc).__name__)
    if not isinstance(result, Generation):
        return Generation(success=False, error=f"Unexpected generator result: {type(result).__name__}")
    return result


def build_generator(cfg: Settings, client: Optional[HttpClient] = None) -> Optional[LlmTextGenerator]:
    """Return a generator for the configured route, or None when no API key is set."""
    route = route_from_settings(cfg)
    if route is None:
        logger.warning("LLM_API_KEY not configured; text generation unavailable")
        return None
    return LlmTextGenerator(route, client=client)


def resolve_generator(cfg: Settings, client: Optional[HttpClient] = None) -> Optional[TextGenerator]:
    """Prefer a callable bound under TEXTGEN_KEY, else the configured HTTP route."""
    bound = find_model(TEXTGEN_KEY)
    if bound is not None:
        return CallableTextGenerator(bound)
    return build_generator(cfg, client=client)


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        response = client.post(url, json=payload, headers=headers, timeout=timeout)
        return response, None
    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> list[Dict[str, str]]:  # Ensure message payload shape
    normalized: list[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        content = str(item.get("content", ""))
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": content})
    return normalized


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # Build preview string for logging
    for message in messages:
        text = message.get("content", "").strip()
        if text:
            return text.splitlines()[0]
    return ""


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines:
            lines = lines[1:]
            while lines and lines[0].strip() == "":
                lines = lines[1:]
            while lines and lines[-1].strip() == "":
                lines = lines[:-1]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text


__all__ = [
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "Generation",
    "TextGenerator",
    "LlmTextGenerator",
    "CallableTextGenerator",
    "build_generator",
    "resolve_generator",
    "safe_generate",
    "call",
    "chat",
    "strip_code_fences",
]
