"""
Dispatch Manager

Stage 5 of the attention pipeline. Builds one DispatchRequest per channel and
fans them out to registered transports.

Each channel is delivered independently: a failing or missing transport yields
a failed DispatchResult for that channel only. Results keep request order.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from ..common.schemas import (
    AttentionEvent,
    DispatchRequest,
    DispatchResult,
    PrimaryDirective,
)

logger = logging.getLogger("herald.attention.dispatch")

DEFAULT_AUDIENCE = "default"

DispatchTransport = Callable[[DispatchRequest], Awaitable[DispatchResult]]


def select_channels(
    event: AttentionEvent,
    directive: PrimaryDirective,
    channel_preferences: Mapping[str, Sequence[str]],
) -> List[str]:
    """Directive channels if any, else the source's configured preferences"""
    if directive.recommended_channels:
        return list(directive.recommended_channels)
    return list(channel_preferences.get(event.source) or [])


def resolve_audience(event: AttentionEvent) -> str:
    audience = (event.metadata or {}).get("audience")
    if isinstance(audience, str) and audience:
        return audience
    return DEFAULT_AUDIENCE


def build_payload(event: AttentionEvent, directive: PrimaryDirective) -> Dict:
    """Channel payload. Carries an event descriptor, never the raw payload."""
    return {
        "summary": directive.summary,
        "escalationLevel": directive.escalation_level.value,
        "context": dict(directive.context_injections),
        "event": event.descriptor(),
        "followUpActions": [a.to_dict() for a in directive.follow_up_actions],
    }


class DispatchManager:
    """
    Routes dispatch requests to channel transports.

    A transport is an async callable ``(DispatchRequest) -> DispatchResult``.
    """

    def __init__(self, transports: Optional[Mapping[str, DispatchTransport]] = None):
        self._transports: Dict[str, DispatchTransport] = dict(transports or {})

    @property
    def channels(self) -> List[str]:
        """Channels with a registered transport"""
        return sorted(self._transports)

    def register_transport(self, channel: str, transport: DispatchTransport) -> None:
        self._transports[channel] = transport

    def build_requests(
        self,
        event: AttentionEvent,
        directive: PrimaryDirective,
        channel_preferences: Mapping[str, Sequence[str]],
    ) -> List[DispatchRequest]:
        """
        Build one request per target channel.

        Returns an empty list when the directive suppresses notification or
        there is nowhere to send it.
        """
        if not directive.should_notify:
            return []

        channels = select_channels(event, directive, channel_preferences)
        if not channels:
            logger.info("No channels configured for attention dispatch (source=%s)", event.source)
            return []

        audience = resolve_audience(event)
        return [
            DispatchRequest(
                channel=channel,
                audience=audience,
                payload=build_payload(event, directive),
            )
            for channel in channels
        ]

    async def dispatch(self, requests: List[DispatchRequest]) -> List[DispatchResult]:
        """Deliver all requests concurrently; one result per request, in order."""
        if not requests:
            return []
        return list(await asyncio.gather(*(self._send(request) for request in requests)))

    async def _send(self, request: DispatchRequest) -> DispatchResult:
        transport = self._transports.get(request.channel)
        if transport is None:
            logger.warning("No dispatch transport registered (channel=%s)", request.channel)
            return DispatchResult(
                channel=request.channel,
                delivered=False,
                error="transport_not_registered",
            )

        try:
            return await transport(request)
        except Exception as e:
            logger.error("Dispatch transport failed (channel=%s): %s", request.channel, e)
            return DispatchResult(channel=request.channel, delivered=False, error=str(e))
