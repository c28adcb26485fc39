"""
Herald Common Module

Shared infrastructure for the attention pipeline: configuration, errors,
LLM access and the data model.
"""

from .config import HeraldConfig, AttentionConfig, load_config
from .errors import HeraldError, InvalidEvent, ReasoningUnavailable
from .llm_client import LLMClient

__all__ = [
    "HeraldConfig",
    "AttentionConfig",
    "load_config",
    "HeraldError",
    "InvalidEvent",
    "ReasoningUnavailable",
    "LLMClient",
]
