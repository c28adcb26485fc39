"""
Attention Pipeline - Notification Triage

Decides whether an upstream event deserves a human's attention and delivers
a synthesized notification when it does.

Key Components:
- AttentionIngestionService: Validates and canonicalizes raw events
- AttentionClassifier: Reasoning-service scoring with heuristic fallback
- ThresholdDecider: Per source:kind escalate/discard thresholds
- DirectiveCoordinator: Whether, where and how to notify
- DispatchManager: Per-channel fan-out with partial-failure isolation
- AttentionPipeline: The five stages composed in order

Rules:
1. Most events are noise; only escalate what clears its threshold
2. The reasoning service is optional; fallbacks are deterministic
3. Fallback results are labelled (version/provenance), never hidden
4. Only malformed input fails a pipeline run
5. One channel's failure never blocks another
"""

from .ingestion import AttentionIngestionService
from .guarded_runner import GuardedReasoningService
from .classifier import AttentionClassifier, FALLBACK_VERSION
from .threshold import ThresholdDecider
from .coordinator import DirectiveCoordinator, FALLBACK_PROVENANCE
from .dispatch import DispatchManager
from .pipeline import AttentionPipeline

__all__ = [
    "AttentionIngestionService",
    "GuardedReasoningService",
    "AttentionClassifier",
    "FALLBACK_VERSION",
    "ThresholdDecider",
    "DirectiveCoordinator",
    "FALLBACK_PROVENANCE",
    "DispatchManager",
    "AttentionPipeline",
]
