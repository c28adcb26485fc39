"""
Attention Classifier

Stage 2 of the attention pipeline. Scores an event for urgency and relevance.

Primary path: guarded reasoning service.
Fallback path: deterministic keyword/priority heuristic.

The classifier never fails visibly; ``version`` on the result tells which path
produced it.
"""

import logging
from typing import Any, Dict, List, Optional

from ..common.config import AttentionConfig
from ..common.schemas import AttentionEvent, ClassificationResult, Relevance
from .guarded_runner import GuardedReasoningService

logger = logging.getLogger("herald.attention.classifier")

FALLBACK_VERSION = "fallback-heuristic"

URGENT_KEYWORDS = ("urgent", "asap", "notify user", "notify asap", "immediately")

KEYWORD_SCORE = 9
CRITICAL_KIND_SCORE = 9
DEFAULT_SCORE = 3
MAX_SCORE = 10


def relevance_for_score(score: float) -> Relevance:
    """Relevance tier used by the fallback heuristic"""
    if score >= 7:
        return Relevance.HIGH
    if score >= 4:
        return Relevance.MEDIUM
    return Relevance.LOW


def _collect_strings(value: Any, out: List[str]) -> None:
    if not value:
        return
    if isinstance(value, str):
        out.append(value)
    elif isinstance(value, dict):
        for item in value.values():
            _collect_strings(item, out)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect_strings(item, out)


def contains_urgent_keywords(event: AttentionEvent) -> bool:
    """Check payload and metadata (recursively) for an urgency keyword"""
    candidates: List[str] = []
    _collect_strings(event.payload, candidates)
    _collect_strings(event.metadata, candidates)
    if not candidates:
        return False

    corpus = " ".join(candidates).lower()
    return any(keyword in corpus for keyword in URGENT_KEYWORDS)


def estimate_score(event: AttentionEvent) -> float:
    """
    Deterministic urgency score.

    Order:
    1. Positive numeric metadata.priority, capped at 10
    2. Urgency keyword anywhere in payload/metadata -> 9
    3. "critical" in the event kind -> 9
    4. Otherwise 3
    """
    priority = (event.metadata or {}).get("priority")
    if isinstance(priority, (int, float)) and not isinstance(priority, bool) and priority > 0:
        return min(MAX_SCORE, priority)

    if contains_urgent_keywords(event):
        return KEYWORD_SCORE

    if "critical" in event.kind.lower():
        return CRITICAL_KIND_SCORE

    return DEFAULT_SCORE


def fallback_classification(
    event: AttentionEvent,
    ambient_context: Optional[Dict[str, Any]] = None,
) -> ClassificationResult:
    """Build the heuristic classification for an event"""
    score = estimate_score(event)
    return ClassificationResult(
        urgency_score=score,
        relevance=relevance_for_score(score),
        filtered=score < 1,
        reasons=["fallback_heuristic"],
        context=dict(ambient_context) if ambient_context else {},
        tags=[],
        version=FALLBACK_VERSION,
    )


class AttentionClassifier:
    """
    Classifies attention events.

    Tries the reasoning service first; any unavailability (unconfigured,
    error, timeout, malformed response) silently falls back to the heuristic.
    """

    def __init__(
        self,
        config: Optional[AttentionConfig] = None,
        reasoning: Optional[GuardedReasoningService] = None,
    ):
        self._config = config or AttentionConfig()
        self._reasoning = reasoning or GuardedReasoningService(self._config.guardrails)

    @property
    def reasoning(self) -> GuardedReasoningService:
        return self._reasoning

    async def classify(
        self,
        event: AttentionEvent,
        ambient_context: Optional[Dict[str, Any]] = None,
    ) -> ClassificationResult:
        """
        Classify an event.

        Args:
            event: Canonical event
            ambient_context: Caller-supplied context carried into fallback results

        Returns:
            ClassificationResult (never raises)
        """
        logger.debug("Classifying attention event (source=%s kind=%s)", event.source, event.kind)

        result = await self._reasoning.classify(event)
        if result is not None:
            logger.debug("Classified by reasoning service (%s): score=%s", result.version, result.urgency_score)
            return result

        result = fallback_classification(event, ambient_context)
        logger.debug("Classified by fallback heuristic: score=%s", result.urgency_score)
        return result
