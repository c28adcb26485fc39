#!/usr/bin/env python3
"""
Attention Pipeline Sample Run

Sends one event through the attention pipeline using the local config and
prints the pipeline result as JSON. Useful for checking thresholds, channel
preferences and the Slack target without an upstream producer.

Usage:
    python scripts/send_sample_event.py [--source whoop] [--kind recovery]
        [--payload '{"status": "critical"}'] [--priority 9] [--no-dispatch]
"""

import sys
import json
import asyncio
import argparse
import logging
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

SAMPLE_PAYLOAD = {
    "status": "critical",
    "readiness_score": 23,
    "strain": 18.9,
    "sleep_need": 9.2,
    "sleep_obtained": 5.4,
    "notes": "HRV crashed, strain unusually high after back-to-back workouts.",
}


def main():
    parser = argparse.ArgumentParser(description="Run one sample event through the attention pipeline")
    parser.add_argument("--source", type=str, default="whoop", help="Event source identifier")
    parser.add_argument("--kind", type=str, default="recovery", help="Event kind within the source")
    parser.add_argument("--payload", type=str, default=None, help="Event payload as JSON")
    parser.add_argument("--priority", type=float, default=9, help="metadata.priority hint (0 to omit)")
    parser.add_argument("--audience", type=str, default=None, help="metadata.audience")
    parser.add_argument("--no-dispatch", action="store_true", help="Do not register any delivery transport")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    from dotenv import load_dotenv

    from herald.common.config import load_config
    from herald.common.errors import InvalidEvent
    from herald.common.schemas import RawEvent
    from herald.attention.pipeline import AttentionPipeline
    from herald.attention import server

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        payload = json.loads(args.payload) if args.payload else SAMPLE_PAYLOAD
    except json.JSONDecodeError as e:
        print(f"[Sample] ERROR: --payload is not valid JSON: {e}")
        sys.exit(1)

    metadata = {}
    if args.priority:
        metadata["priority"] = args.priority
    if args.audience:
        metadata["audience"] = args.audience

    config = load_config()
    if args.no_dispatch:
        pipeline = AttentionPipeline(config.attention)
    else:
        pipeline = server.build_pipeline(config)

    raw = RawEvent(source=args.source, kind=args.kind, payload=payload, metadata=metadata)

    async def _run():
        try:
            return await pipeline.process(raw)
        finally:
            await pipeline.aclose()
            if server.slack_transport is not None:
                await server.slack_transport.aclose()

    try:
        result = asyncio.run(_run())
    except InvalidEvent as e:
        print(f"[Sample] ERROR: invalid event: {e}")
        sys.exit(1)

    print(json.dumps(result.to_dict(), indent=2, default=str))


if __name__ == "__main__":
    main()
