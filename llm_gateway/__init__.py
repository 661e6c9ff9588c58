from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    CallableTextGenerator,
    Generation,
    HttpClient,
    HttpResponse,
    LlmGatewayError,
    LlmTextGenerator,
    TextGenerator,
    build_generator,
    resolve_generator,
    safe_generate,
    call,
    chat,
    strip_code_fences,
)

__all__ = [
    "CallableTextGenerator",
    "Generation",
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "LlmTextGenerator",
    "TextGenerator",
    "build_generator",
    "resolve_generator",
    "safe_generate",
    "call",
    "chat",
    "strip_code_fences",
]
