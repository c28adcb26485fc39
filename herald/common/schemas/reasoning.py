"""
Reasoning Service Response Schemas

Validation models for the JSON the reasoning service returns. Anything that
fails validation is treated as an unavailable service by the caller.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

from .attention import (
    ClassificationResult,
    EscalationLevel,
    FollowUpAction,
    PrimaryDirective,
    Relevance,
)


CLASSIFICATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "urgencyScore": {"type": "number", "minimum": 0, "maximum": 10},
        "relevance": {"type": "string", "enum": ["none", "low", "medium", "high"]},
        "filtered": {"type": "boolean"},
        "reasons": {"type": "array", "items": {"type": "string"}},
        "context": {"type": "object", "additionalProperties": True},
        "tags": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["urgencyScore", "relevance", "filtered", "reasons"],
    "additionalProperties": False,
}

DIRECTIVE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "shouldNotify": {"type": "boolean"},
        "escalationLevel": {"type": "string", "enum": ["monitor", "notify", "urgent"]},
        "summary": {"type": "string"},
        "recommendedChannels": {"type": "array", "items": {"type": "string"}},
        "contextInjections": {"type": "object", "additionalProperties": True},
        "followUpActions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "label": {"type": "string"},
                    "tool": {"type": "string"},
                    "args": {"type": "object", "additionalProperties": True},
                },
                "required": ["label"],
            },
        },
    },
    "required": ["shouldNotify", "escalationLevel", "summary"],
    "additionalProperties": False,
}


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _object(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class ClassificationPayload(BaseModel):
    """Classification as returned by the reasoning service"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    urgency_score: Union[StrictInt, StrictFloat] = Field(..., alias="urgencyScore")
    relevance: Relevance = Relevance.LOW
    filtered: bool = False
    reasons: List[str] = Field(default_factory=list)
    context: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)

    @field_validator("relevance", mode="before")
    @classmethod
    def _default_relevance(cls, v):
        if v is None:
            return Relevance.LOW
        return v.lower() if isinstance(v, str) else v

    @field_validator("filtered", mode="before")
    @classmethod
    def _coerce_filtered(cls, v):
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return bool(v)

    @field_validator("reasons", "tags", mode="before")
    @classmethod
    def _coerce_lists(cls, v):
        return _string_list(v)

    @field_validator("context", mode="before")
    @classmethod
    def _coerce_context(cls, v):
        return _object(v)

    def to_result(self, version: str) -> ClassificationResult:
        return ClassificationResult(
            urgency_score=min(10, max(0, self.urgency_score)),
            relevance=self.relevance,
            filtered=self.filtered,
            reasons=list(self.reasons),
            context=dict(self.context),
            tags=list(self.tags),
            version=version,
        )


class FollowUpActionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    label: str = Field(..., min_length=1)
    tool: Optional[str] = None
    args: Optional[Dict[str, Any]] = None


class DirectivePayload(BaseModel):
    """Directive as returned by the reasoning service"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    should_notify: bool = Field(..., alias="shouldNotify")
    escalation_level: EscalationLevel = Field(..., alias="escalationLevel")
    summary: str = Field(..., min_length=1)
    recommended_channels: List[str] = Field(default_factory=list, alias="recommendedChannels")
    context_injections: Dict[str, Any] = Field(default_factory=dict, alias="contextInjections")
    follow_up_actions: List[FollowUpActionPayload] = Field(default_factory=list, alias="followUpActions")

    @field_validator("escalation_level", mode="before")
    @classmethod
    def _lower_level(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("recommended_channels", mode="before")
    @classmethod
    def _coerce_channels(cls, v):
        return _string_list(v)

    @field_validator("context_injections", mode="before")
    @classmethod
    def _coerce_context(cls, v):
        return _object(v)

    @field_validator("follow_up_actions", mode="before")
    @classmethod
    def _coerce_actions(cls, v):
        return v if isinstance(v, list) else []

    def to_directive(self, provenance: str) -> PrimaryDirective:
        return PrimaryDirective(
            should_notify=self.should_notify,
            recommended_channels=list(self.recommended_channels),
            summary=self.summary,
            escalation_level=self.escalation_level,
            context_injections=dict(self.context_injections),
            follow_up_actions=[
                FollowUpAction(label=a.label, tool=a.tool, args=a.args)
                for a in self.follow_up_actions
            ],
            provenance=provenance,
        )
