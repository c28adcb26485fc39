"""
Slack Dispatch Transport

Posts attention notifications to a configured Slack channel via
``chat.postMessage``. Every failure is returned as an undelivered
DispatchResult; this transport never raises.
"""

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ...common.config import ATTENTION_DIR, SlackTargetConfig
from ...common.schemas import DispatchRequest, DispatchResult

logger = logging.getLogger("herald.attention.transports.slack")

SLACK_API_URL = "https://slack.com/api"
SLACK_CHANNEL = "slack"


def _strip_markup(text: str) -> str:
    return text.replace("*", "").replace("_", "")


def _retry_at(retry_after: Optional[str]) -> Optional[str]:
    """ISO-8601 UTC time after which Slack accepts another post"""
    try:
        seconds = int(retry_after)
    except (TypeError, ValueError):
        return None
    return (datetime.now(timezone.utc) + timedelta(seconds=seconds)).isoformat()


class SlackDispatchTransport:
    """
    Slack delivery for the ``slack`` channel.

    Token resolution order:
    1. ATTENTION_SLACK_USER_TOKEN / ATTENTION_SLACK_BOT_TOKEN
    2. <attention dir>/slack/tokens.json
    3. target.bot_token (skipped when use_dedicated_token is set)
    """

    def __init__(
        self,
        target: Optional[SlackTargetConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        tokens_path: Optional[Path] = None,
        timeout: float = 10.0,
    ):
        self._target = target or SlackTargetConfig()
        self._http = http_client
        self._owns_http = http_client is None
        self._tokens_path = tokens_path or (ATTENTION_DIR / "slack" / "tokens.json")
        self._timeout = timeout

    async def __call__(self, request: DispatchRequest) -> DispatchResult:
        return await self.send(request)

    async def send(self, request: DispatchRequest) -> DispatchResult:
        if not self._target.channel_id:
            logger.warning("Slack dispatch requested but no channel configured")
            return DispatchResult(channel=request.channel, delivered=False, error="slack_not_configured")

        if request.channel != SLACK_CHANNEL:
            return DispatchResult(channel=request.channel, delivered=False, error="unsupported_channel")

        token = self._resolve_token()
        if not token:
            return DispatchResult(channel=request.channel, delivered=False, error="slack_token_unavailable")

        fallback, blocks = self.build_message(request)
        body = {
            "channel": self._target.channel_id,
            "text": fallback,
            "blocks": blocks,
            "unfurl_links": False,
            "unfurl_media": False,
        }
        if self._target.thread_ts:
            body["thread_ts"] = self._target.thread_ts

        try:
            response = await self._client().post(
                f"{SLACK_API_URL}/chat.postMessage",
                json=body,
                headers={"authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
            if response.status_code == 429:
                logger.warning("Slack rate limited attention notification")
                return DispatchResult(
                    channel=request.channel,
                    delivered=False,
                    error="rate_limited",
                    retry_at=_retry_at(response.headers.get("retry-after")),
                )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to dispatch Slack notification: %s", e)
            return DispatchResult(channel=request.channel, delivered=False, error=str(e))

        if not data.get("ok"):
            error = data.get("error", "slack_api_error")
            logger.error("Slack API rejected notification: %s", error)
            return DispatchResult(channel=request.channel, delivered=False, error=error)

        return DispatchResult(channel=request.channel, delivered=True, message_id=data.get("ts"))

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
            self._owns_http = True
        return self._http

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def _resolve_token(self) -> Optional[str]:
        dedicated = self._resolve_dedicated_token()
        if dedicated:
            return dedicated

        if self._target.use_dedicated_token:
            logger.error("Dedicated attention Slack token required but not configured")
            return None

        return self._target.bot_token or None

    def _resolve_dedicated_token(self) -> Optional[str]:
        env_token = os.getenv("ATTENTION_SLACK_USER_TOKEN") or os.getenv("ATTENTION_SLACK_BOT_TOKEN")
        if env_token:
            return env_token

        if not self._tokens_path.exists():
            return None
        try:
            with open(self._tokens_path) as f:
                parsed = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to read attention Slack token file %s: %s", self._tokens_path, e)
            return None

        if isinstance(parsed, str):
            return parsed or None
        if isinstance(parsed, dict):
            return (
                parsed.get("user_token") or parsed.get("userToken")
                or parsed.get("bot_token") or parsed.get("botToken")
            )
        return None

    # ------------------------------------------------------------------
    # Message
    # ------------------------------------------------------------------

    def build_message(self, request: DispatchRequest) -> Tuple[str, List[Dict[str, Any]]]:
        """Plain-text fallback plus Block Kit blocks for a request payload"""
        payload = request.payload or {}

        summary = payload.get("summary")
        if not isinstance(summary, str) or not summary:
            summary = "Attention alert"

        level = payload.get("escalationLevel")
        escalation = (
            f":warning: Escalation level: *{level.upper()}*"
            if isinstance(level, str) and level else None
        )

        context = payload.get("context") if isinstance(payload.get("context"), dict) else {}
        context_lines = []
        for key, value in context.items():
            rendered = value if isinstance(value, str) else json.dumps(value, default=str)
            context_lines.append(f"• *{key}*: {rendered}")

        follow_ups = []
        for action in payload.get("followUpActions") or []:
            if not isinstance(action, dict) or not action.get("label"):
                continue
            line = f"• {action['label']}"
            if action.get("tool"):
                line += f" _(tool: {action['tool']})_"
            follow_ups.append(line)

        mention = ""
        if self._target.mention_user_id and not self._target.suppress_mentions:
            mention = f"<@{self._target.mention_user_id}> "

        fallback_parts = [summary]
        if escalation:
            fallback_parts.append(_strip_markup(escalation))
        if context_lines:
            fallback_parts.append("\n".join(_strip_markup(line) for line in context_lines))
        if follow_ups:
            fallback_parts.append("Follow-ups:\n" + "\n".join(_strip_markup(line) for line in follow_ups))

        blocks: List[Dict[str, Any]] = [
            {"type": "section", "text": {"type": "mrkdwn", "text": f"{mention}*{summary}*"}},
        ]
        if escalation:
            blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": escalation}]})
        if context_lines:
            blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(context_lines)}})
        if follow_ups:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": "*Suggested actions*\n" + "\n".join(follow_ups)},
            })

        event_info = payload.get("event")
        if isinstance(event_info, dict):
            blocks.append({
                "type": "context",
                "elements": [{
                    "type": "mrkdwn",
                    "text": (
                        f"Source: *{event_info.get('source') or 'unknown'}* • "
                        f"Kind: *{event_info.get('kind') or 'unknown'}* • "
                        f"Received: {event_info.get('receivedAt') or 'unknown'}"
                    ),
                }],
            })

        return "\n".join(fallback_parts), blocks
