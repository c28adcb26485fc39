"""
Guarded Reasoning Service

Narrow client for the external language-model service used by the classifier
and the directive coordinator. Every call is bounded by the configured
guardrails (output size, tool allow-list, policy reference, timeout).

Both public methods return ``None`` instead of raising: transport errors,
timeouts, non-2xx responses and malformed JSON all mean "unavailable", and the
caller falls back to its deterministic path.

Providers:
- codex: OpenAI-compatible ``/responses`` endpoint with guardrail headers
- ollama: local ``/api/chat`` endpoint
- anthropic / openai / google: SDK calls through LLMClient
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..common.config import GuardrailsConfig
from ..common.errors import ReasoningUnavailable
from ..common.llm_client import LLMClient, SDK_PROVIDERS
from ..common.llm_utils import parse_llm_json
from ..common.schemas import (
    AttentionEvent,
    ClassificationResult,
    PrimaryDirective,
    ClassificationPayload,
    DirectivePayload,
    CLASSIFICATION_SCHEMA,
    DIRECTIVE_SCHEMA,
)

logger = logging.getLogger("herald.attention.guarded_runner")

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MAX_OUTPUT_TOKENS = 512

DEFAULT_MODELS = {
    "codex": "o4-mini",
    "ollama": "gpt-oss:20b",
    "anthropic": "claude-haiku-4-5-20251001",
    "openai": "gpt-4o-mini",
    "google": "gemini-2.0-flash-exp",
}

_API_KEY_ENV = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
}
_DEFAULT_API_KEY_ENV = ("CODEX_API_KEY", "OPENAI_API_KEY")


CLASSIFY_SYSTEM_PROMPT = """You are a non-interactive attention classifier. Obey the guardrails.

Given one event, judge how urgently a human needs to see it.
- urgencyScore: 0-10, higher is more urgent. Score conservatively when uncertain.
- relevance: "none", "low", "medium" or "high"
- filtered: true only when the event is noise and should be silently ignored
- reasons: short rationales for the score
- context: optional snippets that help a human act (only if safe to share)
- tags: optional free-form labels

Only return JSON matching the schema. No extra text."""


DIRECTIVE_SYSTEM_PROMPT = """You are a non-interactive notification planner. Obey the guardrails.

An event has already been judged worth escalating. Decide how to notify.
- shouldNotify: false if a notification would still be unhelpful
- escalationLevel: "monitor", "notify" or "urgent"
- summary: one or two sentences a human can act on
- recommendedChannels: channel identifiers, or [] to use the configured defaults
- contextInjections: supporting data or links to attach
- followUpActions: suggested next steps, each with a "label" and optional "tool"/"args"

Only return JSON matching the schema. No extra text."""


T = TypeVar("T", bound=BaseModel)


def _infer_provider(base_url: str) -> str:
    if "11434" in base_url or "ollama" in base_url:
        return "ollama"
    return "codex"


def _resolve_api_key(provider: str) -> Optional[str]:
    for env_var in _API_KEY_ENV.get(provider, _DEFAULT_API_KEY_ENV):
        value = os.getenv(env_var)
        if value:
            return value
    return None


class GuardedReasoningService:
    """
    Guarded client for the reasoning service.

    Unset guardrail values are derived at construction:
    provider from the base URL, model from the provider, api key and policy
    from the environment.
    """

    def __init__(
        self,
        guardrails: Optional[GuardrailsConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        llm_client: Optional[LLMClient] = None,
    ):
        g = guardrails or GuardrailsConfig()

        self._base_url = (
            g.base_url
            or os.getenv("CODEX_BASE_URL")
            or os.getenv("OPENAI_BASE_URL")
            or DEFAULT_BASE_URL
        ).rstrip("/")
        self.provider = (g.provider or _infer_provider(self._base_url)).lower()
        self.model = (
            g.model
            or os.getenv("CODEX_MODEL")
            or os.getenv("OPENAI_MODEL")
            or DEFAULT_MODELS.get(self.provider, DEFAULT_MODELS["codex"])
        )
        self._api_key = g.api_key or _resolve_api_key(self.provider)
        self._policy_uri = g.policy_uri or os.getenv("CODEX_POLICY_URI") or os.getenv("OPENAI_POLICY_URI")
        self._max_output_tokens = int(
            g.max_output_tokens
            or os.getenv("CODEX_MAX_OUTPUT_TOKENS")
            or DEFAULT_MAX_OUTPUT_TOKENS
        )
        self._allow_tools = list(g.allow_tools)
        self._require_api_key = (
            g.require_api_key if g.require_api_key is not None else self.provider != "ollama"
        )
        self._send_protocol_headers = (
            g.send_protocol_headers if g.send_protocol_headers is not None else self.provider == "codex"
        )
        self._timeout = g.timeout_seconds

        self._http = http_client
        self._owns_http = http_client is None

        self._llm = llm_client
        if self._llm is None and self.provider in SDK_PROVIDERS:
            self._llm = LLMClient(provider=self.provider, model=self.model, api_key=self._api_key)

    @property
    def version(self) -> str:
        """Version string stamped on results produced by this service"""
        return f"{self.provider}-{self.model}"

    @property
    def max_output_tokens(self) -> int:
        return self._max_output_tokens

    @property
    def is_configured(self) -> bool:
        if self.provider in SDK_PROVIDERS:
            return self._llm is not None and self._llm.is_available
        if self._require_api_key:
            return bool(self._api_key)
        return True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def classify(self, event: AttentionEvent) -> Optional[ClassificationResult]:
        """Classify an event, or return None if the service is unavailable."""
        if not self.is_configured:
            logger.warning("Reasoning classification skipped: service not configured (%s)", self.provider)
            return None

        request = {
            "event": event.to_dict(),
            "instructions": (
                "Derive urgency (0-10), relevance tier, filter boolean, rationales, "
                "context snippets (if safe)."
            ),
        }
        try:
            text = await self._bounded_complete(
                CLASSIFY_SYSTEM_PROMPT, request, CLASSIFICATION_SCHEMA, "AttentionClassification"
            )
            payload = self._parse(text, ClassificationPayload)
        except ReasoningUnavailable as e:
            logger.warning("Reasoning classification unavailable: %s", e)
            return None
        except Exception as e:
            logger.error("Reasoning classification request threw error: %s", e)
            return None

        return payload.to_result(self.version)

    async def synthesize_directive(
        self,
        event: AttentionEvent,
        classification: ClassificationResult,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[PrimaryDirective]:
        """Plan a notification directive, or return None if the service is unavailable."""
        if not self.is_configured:
            logger.warning("Directive synthesis skipped: service not configured (%s)", self.provider)
            return None

        request = {
            "event": event.to_dict(),
            "classification": classification.to_dict(),
            "context": context or {},
            "instructions": "Decide whether, where and how urgently to notify a human.",
        }
        try:
            text = await self._bounded_complete(
                DIRECTIVE_SYSTEM_PROMPT, request, DIRECTIVE_SCHEMA, "AttentionDirective"
            )
            payload = self._parse(text, DirectivePayload)
        except ReasoningUnavailable as e:
            logger.warning("Directive synthesis unavailable: %s", e)
            return None
        except Exception as e:
            logger.error("Directive synthesis request threw error: %s", e)
            return None

        return payload.to_directive(self.version)

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it"""
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _bounded_complete(
        self,
        system: str,
        request: Dict[str, Any],
        schema: Dict[str, Any],
        schema_name: str,
    ) -> str:
        try:
            return await asyncio.wait_for(
                self._complete(system, request, schema, schema_name),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise ReasoningUnavailable(f"no response within {self._timeout}s")

    async def _complete(
        self,
        system: str,
        request: Dict[str, Any],
        schema: Dict[str, Any],
        schema_name: str,
    ) -> str:
        user_text = json.dumps(request, default=str)

        if self.provider == "ollama":
            return await self._complete_ollama(system, user_text)

        if self.provider in SDK_PROVIDERS:
            return await asyncio.to_thread(
                self._llm.generate,
                user_text,
                system=self._system_prompt(system),
                max_tokens=self._max_output_tokens,
                timeout=self._timeout,
            )

        return await self._complete_codex(system, user_text, schema, schema_name)

    def _system_prompt(self, base: str) -> str:
        if self._policy_uri:
            return f"{base}\nPolicy: {self._policy_uri}"
        return base

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
            self._owns_http = True
        return self._http

    async def _post_json(self, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> Any:
        try:
            response = await self._client().post(url, json=body, headers=headers, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise ReasoningUnavailable(f"transport error: {e}")

        if response.status_code >= 400:
            raise ReasoningUnavailable(f"status {response.status_code}: {response.text[:200]}")

        try:
            return response.json()
        except ValueError:
            raise ReasoningUnavailable("response body is not JSON")

    async def _complete_codex(
        self,
        system: str,
        user_text: str,
        schema: Dict[str, Any],
        schema_name: str,
    ) -> str:
        headers = {"content-type": "application/json"}
        if self._api_key:
            headers["authorization"] = f"Bearer {self._api_key}"
        if self._send_protocol_headers:
            headers["x-codex-mode"] = "non_interactive_ci"
        if self._policy_uri:
            headers["x-codex-guardrails-policy"] = self._policy_uri

        body = {
            "model": self.model,
            "input": [
                {"role": "system", "content": self._system_prompt(system)},
                {"role": "user", "content": [{"type": "text", "text": user_text}]},
            ],
            "max_output_tokens": self._max_output_tokens,
            "guardrails": {
                "allow_tools": self._allow_tools,
                "temperature": 0,
                "max_output_tokens": self._max_output_tokens,
            },
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": schema},
            },
        }

        payload = await self._post_json(f"{self._base_url}/responses", body, headers)
        return self._extract_codex_text(payload)

    @staticmethod
    def _extract_codex_text(payload: Any) -> str:
        if not isinstance(payload, dict):
            raise ReasoningUnavailable("unexpected payload shape")

        content = None
        output = payload.get("output")
        if isinstance(output, list) and output and isinstance(output[0], dict):
            content = output[0].get("content")
        if content is None:
            content = payload.get("content")
        if not content:
            raise ReasoningUnavailable("response carried no content")

        if isinstance(content, list):
            parts = [
                part.get("text") for part in content
                if isinstance(part, dict) and part.get("text")
            ]
            return "\n".join(parts)
        return str(content)

    async def _complete_ollama(self, system: str, user_text: str) -> str:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self._system_prompt(system)},
                {"role": "user", "content": user_text},
            ],
            "options": {
                "temperature": 0,
                "num_predict": self._max_output_tokens,
            },
            "stream": False,
        }
        payload = await self._post_json(
            f"{self._base_url}/api/chat", body, {"content-type": "application/json"}
        )

        message = payload.get("message") if isinstance(payload, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not content:
            raise ReasoningUnavailable("ollama response carried no message content")
        return content if isinstance(content, str) else json.dumps(content)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(text: str, model: Type[T]) -> T:
        data = parse_llm_json(text)
        if not data:
            raise ReasoningUnavailable("no JSON object in response")
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ReasoningUnavailable(f"response failed validation: {e.error_count()} error(s)")
