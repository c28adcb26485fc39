"""
Directive Coordinator

Stage 4 of the attention pipeline. For escalated events only, decides whether
to notify, where, and with what summary.

The reasoning service plans the directive when available; otherwise a minimal
fallback directive is returned that defers channel choice to the configured
channel preferences.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from ..common.config import AttentionConfig
from ..common.schemas import (
    AttentionEvent,
    ClassificationResult,
    EscalationLevel,
    PrimaryDirective,
)
from .guarded_runner import GuardedReasoningService

logger = logging.getLogger("herald.attention.coordinator")

FALLBACK_PROVENANCE = "fallback-directive"

ContextFetcher = Callable[[AttentionEvent], Union[Dict[str, Any], Awaitable[Dict[str, Any]]]]


def escalation_for_score(score: float) -> EscalationLevel:
    if score >= 9:
        return EscalationLevel.URGENT
    if score >= 7:
        return EscalationLevel.NOTIFY
    return EscalationLevel.MONITOR


def fallback_directive(event: AttentionEvent, classification: ClassificationResult) -> PrimaryDirective:
    """Minimal directive used when the reasoning service cannot plan one"""
    return PrimaryDirective(
        should_notify=True,
        recommended_channels=[],
        summary=f"{event.source} {event.kind} event needs attention",
        escalation_level=escalation_for_score(classification.urgency_score),
        context_injections={},
        follow_up_actions=[],
        provenance=FALLBACK_PROVENANCE,
    )


class DirectiveCoordinator:
    """
    Produces a PrimaryDirective for an escalated event.

    Args:
        config: Attention config (used to build a default reasoning service)
        reasoning: Guarded reasoning service used to plan directives
        fetch_context: Optional hook gathering supporting context for the planner
    """

    def __init__(
        self,
        config: Optional[AttentionConfig] = None,
        reasoning: Optional[GuardedReasoningService] = None,
        fetch_context: Optional[ContextFetcher] = None,
    ):
        self._config = config or AttentionConfig()
        self._reasoning = reasoning or GuardedReasoningService(self._config.guardrails)
        self._fetch_context = fetch_context

    async def run(self, event: AttentionEvent, classification: ClassificationResult) -> PrimaryDirective:
        context = await self._gather_context(event)

        directive = await self._reasoning.synthesize_directive(event, classification, context)
        if directive is not None:
            logger.debug(
                "Directive planned by reasoning service (%s): notify=%s level=%s",
                directive.provenance, directive.should_notify, directive.escalation_level.value,
            )
            return directive

        logger.debug("Directive fallback path (source=%s kind=%s)", event.source, event.kind)
        return fallback_directive(event, classification)

    async def _gather_context(self, event: AttentionEvent) -> Dict[str, Any]:
        if self._fetch_context is None:
            return {}
        try:
            context = self._fetch_context(event)
            if inspect.isawaitable(context):
                context = await context
        except Exception as e:
            logger.warning("Context fetch failed (source=%s kind=%s): %s", event.source, event.kind, e)
            return {}
        return context if isinstance(context, dict) else {}
