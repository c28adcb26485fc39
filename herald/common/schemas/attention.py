"""
Attention Pipeline Data Model

Every stage hands the next one an immutable value. Python field names are
snake_case; ``to_dict()`` produces the camelCase wire shape used in HTTP
responses, dispatch payloads and logs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from ..errors import InvalidEvent


# ============================================================================
# Enums
# ============================================================================

class Relevance(str, Enum):
    """Relevance tier of a classified event"""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ThresholdAction(str, Enum):
    """Outcome of the threshold stage"""
    ESCALATE = "escalate"
    DISCARD = "discard"


class EscalationLevel(str, Enum):
    """Severity attached to a directive"""
    MONITOR = "monitor"
    NOTIFY = "notify"
    URGENT = "urgent"


def utc_now_iso() -> str:
    """Current wall-clock time as an ISO-8601 UTC string"""
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Events
# ============================================================================

@dataclass
class RawEvent:
    """Source-specific event as handed over by an upstream producer."""
    source: str
    kind: str
    payload: Any = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    dedupe_key: Optional[str] = None
    correlation_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "RawEvent":
        """Build a RawEvent from a decoded JSON body (camelCase or snake_case)."""
        if not isinstance(data, dict):
            raise InvalidEvent("Event must be a JSON object")

        metadata = data.get("metadata")
        if metadata is None:
            metadata = {}
        if not isinstance(metadata, dict):
            raise InvalidEvent("Event metadata must be an object", field="metadata")

        return cls(
            source=data.get("source"),
            kind=data.get("kind"),
            payload=data.get("payload"),
            metadata=metadata,
            dedupe_key=data.get("dedupeKey", data.get("dedupe_key")),
            correlation_id=data.get("correlationId", data.get("correlation_id")),
        )


@dataclass(frozen=True)
class AttentionEvent:
    """Canonical, validated event. Owned by a single pipeline invocation."""
    source: str
    kind: str
    payload: Any
    metadata: Dict[str, Any]
    received_at: str
    normalized: Dict[str, Any] = field(default_factory=dict)
    dedupe_key: Optional[str] = None
    correlation_id: Optional[str] = None

    @property
    def source_key(self) -> str:
        """Composite ``source:kind`` key used for threshold lookup"""
        return f"{self.source}:{self.kind}"

    def descriptor(self) -> Dict[str, str]:
        """Compact descriptor attached to dispatch payloads"""
        return {
            "source": self.source,
            "kind": self.kind,
            "receivedAt": self.received_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "source": self.source,
            "kind": self.kind,
            "payload": self.payload,
            "metadata": self.metadata,
            "receivedAt": self.received_at,
        }
        if self.dedupe_key:
            data["dedupeKey"] = self.dedupe_key
        if self.correlation_id:
            data["correlationId"] = self.correlation_id
        return data


# ============================================================================
# Stage outputs
# ============================================================================

@dataclass(frozen=True)
class ClassificationResult:
    """Urgency/relevance assessment of one event"""
    urgency_score: float
    relevance: Relevance
    filtered: bool
    reasons: List[str] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "urgencyScore": self.urgency_score,
            "relevance": self.relevance.value,
            "filtered": self.filtered,
            "reasons": list(self.reasons),
            "context": self.context,
            "tags": list(self.tags),
            "version": self.version,
        }


@dataclass(frozen=True)
class ThresholdDecision:
    """Escalate/discard decision for a classified event"""
    action: ThresholdAction
    threshold: float
    score: float
    rule_id: str
    notes: str = ""

    @property
    def escalate(self) -> bool:
        return self.action == ThresholdAction.ESCALATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "threshold": self.threshold,
            "score": self.score,
            "ruleId": self.rule_id,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class FollowUpAction:
    """Advisory next step. Never executed by Herald."""
    label: str
    tool: Optional[str] = None
    args: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label}
        if self.tool:
            data["tool"] = self.tool
        if self.args:
            data["args"] = self.args
        return data


@dataclass(frozen=True)
class PrimaryDirective:
    """Whether, how and where to notify for an escalated event"""
    should_notify: bool
    recommended_channels: List[str]
    summary: str
    escalation_level: EscalationLevel
    context_injections: Dict[str, Any] = field(default_factory=dict)
    follow_up_actions: List[FollowUpAction] = field(default_factory=list)
    provenance: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shouldNotify": self.should_notify,
            "recommendedChannels": list(self.recommended_channels),
            "summary": self.summary,
            "escalationLevel": self.escalation_level.value,
            "contextInjections": self.context_injections,
            "followUpActions": [a.to_dict() for a in self.follow_up_actions],
            "provenance": self.provenance,
        }


# ============================================================================
# Dispatch
# ============================================================================

@dataclass
class DispatchRequest:
    """One delivery attempt to one channel"""
    channel: str
    audience: str
    payload: Dict[str, Any]


@dataclass
class DispatchResult:
    """Outcome of one delivery attempt"""
    channel: str
    delivered: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    retry_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"channel": self.channel, "delivered": self.delivered}
        if self.message_id is not None:
            data["messageId"] = self.message_id
        if self.error is not None:
            data["error"] = self.error
        if self.retry_at is not None:
            data["retryAt"] = self.retry_at
        return data


# ============================================================================
# Pipeline outcomes
# ============================================================================

@dataclass(frozen=True)
class DiscardedResult:
    """Score fell below the threshold; processing stopped"""
    classification: ClassificationResult
    decision: ThresholdDecision

    outcome: ClassVar[str] = "discarded"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "classification": self.classification.to_dict(),
            "decision": self.decision.to_dict(),
        }


@dataclass(frozen=True)
class EscalatedResult:
    """Escalated, but nothing was delivered.

    Either the directive suppressed notification or no channel was eligible;
    ``dispatch_results`` is always empty.
    """
    classification: ClassificationResult
    decision: ThresholdDecision
    primary_directive: PrimaryDirective
    dispatch_results: List[DispatchResult] = field(default_factory=list)

    outcome: ClassVar[str] = "escalated"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "classification": self.classification.to_dict(),
            "decision": self.decision.to_dict(),
            "primaryDirective": self.primary_directive.to_dict(),
            "dispatchResults": [],
        }


@dataclass(frozen=True)
class DispatchedResult:
    """Escalated and fanned out to at least one channel"""
    classification: ClassificationResult
    decision: ThresholdDecision
    primary_directive: PrimaryDirective
    dispatch_results: List[DispatchResult]

    outcome: ClassVar[str] = "dispatched"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "classification": self.classification.to_dict(),
            "decision": self.decision.to_dict(),
            "primaryDirective": self.primary_directive.to_dict(),
            "dispatchResults": [r.to_dict() for r in self.dispatch_results],
        }


PipelineResult = Union[DiscardedResult, EscalatedResult, DispatchedResult]
