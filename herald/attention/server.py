"""
Herald Server

FastAPI server exposing the attention pipeline to upstream producers.

Endpoints:
- POST /events: Run one raw event through the pipeline
- GET /health: Health check
- GET /config: Thresholds and channel preferences (no secrets)

Pipeline:
1. Receive raw event
2. Ingest, classify, decide
3. Synthesize directive for escalated events
4. Dispatch to channels
5. Return the tagged pipeline result
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .. import __version__
from ..common.config import HeraldConfig, ensure_directories, load_config
from ..common.errors import InvalidEvent
from ..common.schemas import RawEvent
from .pipeline import AttentionPipeline
from .transports import SlackDispatchTransport

logger = logging.getLogger("herald.server")


# Global state
config: Optional[HeraldConfig] = None
pipeline: Optional[AttentionPipeline] = None
slack_transport: Optional[SlackDispatchTransport] = None


def build_pipeline(herald_config: HeraldConfig) -> AttentionPipeline:
    """Build the pipeline and register the transports the config enables"""
    global slack_transport

    attention_pipeline = AttentionPipeline(herald_config.attention)

    slack_target = herald_config.attention.dispatch_targets.slack
    if slack_target.channel_id:
        slack_transport = SlackDispatchTransport(target=slack_target)
        attention_pipeline.dispatcher.register_transport("slack", slack_transport)
        logger.info("Slack transport ready (channel: %s)", slack_target.channel_id)
    else:
        slack_transport = None
        logger.info("Slack transport disabled (no channel configured)")

    return attention_pipeline


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config, pipeline

    logger.info("Starting up...")
    ensure_directories()

    config = load_config()
    logger.info(
        "Loaded config (default threshold: %s, %d source thresholds)",
        config.attention.default_threshold, len(config.attention.thresholds),
    )

    pipeline = build_pipeline(config)
    reasoning = pipeline.classifier.reasoning
    if reasoning.is_configured:
        logger.info("Reasoning service ready (%s)", reasoning.version)
    else:
        logger.info("Reasoning service not configured (fallback heuristics only)")

    logger.info("Ready to receive events")

    yield

    logger.info("Shutting down...")
    if slack_transport is not None:
        await slack_transport.aclose()
    if pipeline is not None:
        await pipeline.aclose()


app = FastAPI(
    title="Herald",
    description="Attention pipeline: classify, decide and dispatch notifications",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# Request Models
# =============================================================================

class EventSubmission(BaseModel):
    """Raw event submitted by an upstream producer"""
    model_config = ConfigDict(populate_by_name=True)

    source: Optional[str] = None
    kind: Optional[str] = None
    payload: Any = None
    metadata: Optional[Dict[str, Any]] = None
    dedupe_key: Optional[str] = Field(default=None, alias="dedupeKey")
    correlation_id: Optional[str] = Field(default=None, alias="correlationId")
    ambient_context: Optional[Dict[str, Any]] = Field(default=None, alias="ambientContext")


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    reasoning = pipeline.classifier.reasoning if pipeline else None
    return {
        "status": "healthy",
        "service": "herald",
        "initialized": pipeline is not None,
        "reasoning_configured": reasoning.is_configured if reasoning else False,
        "reasoning_provider": reasoning.provider if reasoning else None,
        "transports": pipeline.dispatcher.channels if pipeline else [],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/config")
async def get_config():
    """Routing-relevant config, without guardrail secrets"""
    if not config:
        raise HTTPException(status_code=503, detail="Config not loaded")

    attention = config.attention
    return {
        "thresholds": attention.thresholds,
        "defaultThreshold": attention.default_threshold,
        "channelPreferences": attention.channel_preferences,
    }


@app.post("/events")
async def submit_event(submission: EventSubmission):
    """
    Run one event through the attention pipeline.

    Malformed events are rejected with 422; every other outcome is a
    normal result body.
    """
    if not pipeline:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")

    raw = RawEvent(
        source=submission.source,
        kind=submission.kind,
        payload=submission.payload,
        metadata=submission.metadata or {},
        dedupe_key=submission.dedupe_key,
        correlation_id=submission.correlation_id,
    )

    try:
        result = await pipeline.process(raw, ambient_context=submission.ambient_context)
    except InvalidEvent as e:
        logger.warning("Rejected invalid event (field=%s): %s", e.field, e)
        raise HTTPException(status_code=422, detail=str(e))

    return JSONResponse(result.to_dict())


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Herald server"""
    import uvicorn

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    server_config = load_config().server
    logger.info("Starting server on %s:%d", server_config.host, server_config.port)
    uvicorn.run(
        "herald.attention.server:app",
        host=server_config.host,
        port=server_config.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
