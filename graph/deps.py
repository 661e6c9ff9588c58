"""Collaborators handed to every state handler."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from agents.adaptive_selector import AdaptiveSelector
from agents.response_evaluator import AnswerEvaluator
from services.profile_store import ProfileStore
from services.reporting import SummaryWriter


class NodeDeps(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    selector: AdaptiveSelector
    evaluator: AnswerEvaluator
    profiles: ProfileStore
    writer: SummaryWriter
    store: Optional[Any] = None  # SessionStore


__all__ = ["NodeDeps"]
