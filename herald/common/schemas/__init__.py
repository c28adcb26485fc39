"""
Herald Attention Schemas

Data model shared by every pipeline stage, plus validation models for
reasoning-service responses.
"""

from .attention import (
    RawEvent,
    AttentionEvent,
    ClassificationResult,
    ThresholdDecision,
    FollowUpAction,
    PrimaryDirective,
    DispatchRequest,
    DispatchResult,
    DiscardedResult,
    EscalatedResult,
    DispatchedResult,
    PipelineResult,
    Relevance,
    ThresholdAction,
    EscalationLevel,
    utc_now_iso,
)
from .reasoning import (
    ClassificationPayload,
    DirectivePayload,
    CLASSIFICATION_SCHEMA,
    DIRECTIVE_SCHEMA,
)

__all__ = [
    "RawEvent",
    "AttentionEvent",
    "ClassificationResult",
    "ThresholdDecision",
    "FollowUpAction",
    "PrimaryDirective",
    "DispatchRequest",
    "DispatchResult",
    "DiscardedResult",
    "EscalatedResult",
    "DispatchedResult",
    "PipelineResult",
    "Relevance",
    "ThresholdAction",
    "EscalationLevel",
    "utc_now_iso",
    "ClassificationPayload",
    "DirectivePayload",
    "CLASSIFICATION_SCHEMA",
    "DIRECTIVE_SCHEMA",
]
