"""
Attention Pipeline

Composes the five stages for one event:

1. Ingest: validate and canonicalize the raw event
2. Classify: reasoning service, or deterministic fallback
3. Decide: escalate/discard against the source-key threshold
4. Direct: synthesize a directive (escalated events only)
5. Dispatch: fan out to channels (when the directive says notify)

Stages run strictly in order. Only InvalidEvent propagates to the caller;
every other failure resolves into the returned PipelineResult.
"""

import logging
from typing import Any, Dict, Optional

from ..common.config import AttentionConfig
from ..common.schemas import (
    DiscardedResult,
    DispatchedResult,
    EscalatedResult,
    PipelineResult,
    RawEvent,
)
from .classifier import AttentionClassifier
from .coordinator import DirectiveCoordinator
from .dispatch import DispatchManager
from .guarded_runner import GuardedReasoningService
from .ingestion import AttentionIngestionService
from .threshold import ThresholdDecider

logger = logging.getLogger("herald.attention.pipeline")


class AttentionPipeline:
    """
    Entry point for upstream producers.

    Stages not supplied are built from ``config``; the classifier and the
    coordinator share one GuardedReasoningService when both are defaulted.
    """

    def __init__(
        self,
        config: Optional[AttentionConfig] = None,
        ingestion: Optional[AttentionIngestionService] = None,
        classifier: Optional[AttentionClassifier] = None,
        threshold: Optional[ThresholdDecider] = None,
        coordinator: Optional[DirectiveCoordinator] = None,
        dispatch: Optional[DispatchManager] = None,
    ):
        self._config = config or AttentionConfig()

        reasoning = None
        if classifier is None or coordinator is None:
            reasoning = GuardedReasoningService(self._config.guardrails)

        self._ingestion = ingestion or AttentionIngestionService()
        self._classifier = classifier or AttentionClassifier(self._config, reasoning=reasoning)
        self._threshold = threshold or ThresholdDecider(self._config)
        self._coordinator = coordinator or DirectiveCoordinator(self._config, reasoning=reasoning)
        self._dispatch = dispatch or DispatchManager()
        self._reasoning = reasoning

    @property
    def config(self) -> AttentionConfig:
        return self._config

    @property
    def dispatcher(self) -> DispatchManager:
        return self._dispatch

    @property
    def classifier(self) -> AttentionClassifier:
        return self._classifier

    async def process(
        self,
        raw: RawEvent,
        ambient_context: Optional[Dict[str, Any]] = None,
    ) -> PipelineResult:
        """
        Run one event through the pipeline.

        Raises:
            InvalidEvent: raw event failed ingestion validation
        """
        event = await self._ingestion.ingest(raw)
        classification = await self._classifier.classify(event, ambient_context)
        decision = self._threshold.decide(event.source_key, classification)

        if not decision.escalate:
            logger.info(
                "Attention event discarded (source_key=%s score=%s threshold=%s version=%s)",
                event.source_key, decision.score, decision.threshold, classification.version,
            )
            return DiscardedResult(classification=classification, decision=decision)

        directive = await self._coordinator.run(event, classification)
        requests = self._dispatch.build_requests(event, directive, self._config.channel_preferences)

        if not requests:
            logger.info(
                "Attention event escalated without dispatch (source_key=%s notify=%s provenance=%s)",
                event.source_key, directive.should_notify, directive.provenance,
            )
            return EscalatedResult(
                classification=classification,
                decision=decision,
                primary_directive=directive,
            )

        results = await self._dispatch.dispatch(requests)
        delivered = sum(1 for r in results if r.delivered)
        logger.info(
            "Attention event dispatched (source_key=%s delivered=%d/%d provenance=%s)",
            event.source_key, delivered, len(results), directive.provenance,
        )
        return DispatchedResult(
            classification=classification,
            decision=decision,
            primary_directive=directive,
            dispatch_results=results,
        )

    async def aclose(self) -> None:
        """Release HTTP clients owned by the default reasoning service"""
        if self._reasoning is not None:
            await self._reasoning.aclose()
