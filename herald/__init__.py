"""
Herald

Attention pipeline that decides whether an upstream event deserves a human's
attention and, if so, delivers a synthesized notification.

Philosophy:
- Most raw events are noise: filter, score, and only escalate what matters
- The reasoning service is optional; every stage has a deterministic fallback
- Fallback results are labelled, never hidden
- One event per invocation, no shared mutable state between invocations

Usage:
    from herald.common import load_config
    from herald.common.schemas import RawEvent
    from herald.attention import AttentionPipeline
"""

__version__ = "0.1.0"
