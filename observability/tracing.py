"""Span helper for recording handler timings."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


@contextmanager
def span(sink: List[Dict[str, Any]], name: str) -> Iterator[None]:
    start = time.perf_counter()
    ok = True
    try:
        yield
    except BaseException:
        ok = False
        raise
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        sink.append({"span": name, "ms": elapsed_ms, "ok": ok, "ts": time.time()})


__all__ = ["span"]
