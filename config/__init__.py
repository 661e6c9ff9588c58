"""Configuration package for the adaptive interview engine."""
from .registry import TEXTGEN_KEY, bind_model, find_model, get_model, unbind_model
from .routes import AppConfig, LlmRoute, RubricWeights, load_config, route_from_settings
from .rubric import DEFAULT_RUBRIC, Rubric, RubricCriterion, build_rubric
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "RubricWeights",
    "load_config",
    "route_from_settings",
    "DEFAULT_RUBRIC",
    "Rubric",
    "RubricCriterion",
    "build_rubric",
    "TEXTGEN_KEY",
    "bind_model",
    "find_model",
    "get_model",
    "unbind_model",
    "Settings",
    "settings",
]
