"""
Attention Ingestion

Stage 1 of the attention pipeline: validates a raw, source-specific event and
turns it into the canonical AttentionEvent. No network calls.
"""

import copy
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..common.errors import InvalidEvent
from ..common.schemas import AttentionEvent, RawEvent, utc_now_iso

logger = logging.getLogger("herald.attention.ingestion")

EnricherOutput = Union[Dict[str, Any], Awaitable[Dict[str, Any]]]
Enricher = Callable[[RawEvent], EnricherOutput]


class AttentionIngestionService:
    """
    Normalizes raw events.

    Enrichers are optional callables that derive extra normalized fields from
    the raw event. A failing enricher is logged and skipped.
    """

    def __init__(self, enrichers: Optional[List[Enricher]] = None):
        self._enrichers = list(enrichers or [])

    async def ingest(self, raw: RawEvent) -> AttentionEvent:
        """
        Validate and canonicalize a raw event.

        Args:
            raw: Event as received from an upstream producer

        Returns:
            AttentionEvent with received_at set to the current time

        Raises:
            InvalidEvent: source or kind missing/empty, or metadata not a mapping
        """
        source = self._require_field(raw, "source")
        kind = self._require_field(raw, "kind")

        metadata = raw.metadata if raw.metadata is not None else {}
        if not isinstance(metadata, dict):
            raise InvalidEvent("Event metadata must be a mapping", field="metadata")

        normalized = await self._run_enrichers(raw)
        event = AttentionEvent(
            source=source,
            kind=kind,
            payload=copy.deepcopy(raw.payload),
            metadata=copy.deepcopy(metadata),
            received_at=utc_now_iso(),
            normalized=normalized,
            dedupe_key=raw.dedupe_key,
            correlation_id=raw.correlation_id,
        )
        logger.debug(
            "Attention event ingested (source=%s kind=%s dedupe_key=%s)",
            source, kind, raw.dedupe_key,
        )
        return event

    @staticmethod
    def _require_field(raw: RawEvent, name: str) -> str:
        value = getattr(raw, name, None)
        if not isinstance(value, str) or not value.strip():
            raise InvalidEvent(f"Event field '{name}' must be a non-empty string", field=name)
        return value

    async def _run_enrichers(self, raw: RawEvent) -> Dict[str, Any]:
        result: Dict[str, Any] = {"payload": copy.deepcopy(raw.payload)}
        for enricher in self._enrichers:
            try:
                output = enricher(raw)
                if inspect.isawaitable(output):
                    output = await output
                if output:
                    result.update(output)
            except Exception as e:
                logger.warning(
                    "Attention enricher failed (source=%s kind=%s): %s",
                    raw.source, raw.kind, e,
                )
        return result
