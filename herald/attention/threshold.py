"""
Threshold Decider

Stage 3 of the attention pipeline. Pure mapping from a classification score to
escalate/discard using per-``source:kind`` thresholds with a global default.

The classification ``filtered`` flag is deliberately not consulted here.
"""

import logging
from typing import Optional

from ..common.config import AttentionConfig
from ..common.schemas import ClassificationResult, ThresholdAction, ThresholdDecision

logger = logging.getLogger("herald.attention.threshold")


class ThresholdDecider:
    """Decides whether a classified event escalates."""

    def __init__(self, config: Optional[AttentionConfig] = None):
        self._config = config or AttentionConfig()

    def threshold_for(self, source_key: str) -> float:
        """Configured threshold for a source key, or the default"""
        return self._config.thresholds.get(source_key, self._config.default_threshold)

    def decide(self, source_key: str, classification: ClassificationResult) -> ThresholdDecision:
        threshold = self.threshold_for(source_key)
        score = classification.urgency_score

        if score >= threshold:
            action, notes = ThresholdAction.ESCALATE, "score_above_threshold"
        else:
            action, notes = ThresholdAction.DISCARD, "below_threshold"

        logger.debug(
            "Threshold decision computed (source_key=%s action=%s score=%s threshold=%s)",
            source_key, action.value, score, threshold,
        )
        return ThresholdDecision(
            action=action,
            threshold=threshold,
            score=score,
            rule_id=source_key,
            notes=notes,
        )
