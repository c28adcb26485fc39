"""Tests for AttentionIngestionService."""

import pytest
from herald.common.errors import InvalidEvent
from herald.common.schemas import RawEvent
from herald.attention.ingestion import AttentionIngestionService


class TestIngestValidation:
    @pytest.mark.asyncio
    async def test_missing_source_rejected(self):
        service = AttentionIngestionService()
        with pytest.raises(InvalidEvent) as exc_info:
            await service.ingest(RawEvent(source=None, kind="mention"))
        assert exc_info.value.field == "source"

    @pytest.mark.asyncio
    async def test_whitespace_kind_rejected(self):
        service = AttentionIngestionService()
        with pytest.raises(InvalidEvent) as exc_info:
            await service.ingest(RawEvent(source="chat", kind="   "))
        assert exc_info.value.field == "kind"

    @pytest.mark.asyncio
    async def test_non_string_source_rejected(self):
        service = AttentionIngestionService()
        with pytest.raises(InvalidEvent):
            await service.ingest(RawEvent(source=42, kind="mention"))

    @pytest.mark.asyncio
    async def test_non_mapping_metadata_rejected(self):
        service = AttentionIngestionService()
        with pytest.raises(InvalidEvent) as exc_info:
            await service.ingest(RawEvent(source="chat", kind="mention", metadata=["x"]))
        assert exc_info.value.field == "metadata"


class TestIngestShape:
    @pytest.mark.asyncio
    async def test_fields_carried_over(self):
        service = AttentionIngestionService()
        raw = RawEvent(
            source="chat",
            kind="mention",
            payload={"text": "hello"},
            metadata={"audience": "ops"},
            dedupe_key="msg-1",
            correlation_id="corr-1",
        )
        event = await service.ingest(raw)

        assert event.source == "chat"
        assert event.kind == "mention"
        assert event.payload == {"text": "hello"}
        assert event.metadata == {"audience": "ops"}
        assert event.dedupe_key == "msg-1"
        assert event.correlation_id == "corr-1"
        assert event.normalized == {"payload": {"text": "hello"}}
        assert event.received_at
        assert event.source_key == "chat:mention"

    @pytest.mark.asyncio
    async def test_none_metadata_becomes_empty(self):
        service = AttentionIngestionService()
        event = await service.ingest(RawEvent(source="chat", kind="mention", metadata=None))
        assert event.metadata == {}

    @pytest.mark.asyncio
    async def test_repeat_ingest_differs_only_in_received_at(self):
        service = AttentionIngestionService()
        raw = RawEvent(source="chat", kind="mention", payload={"text": "hi"}, metadata={"a": 1})

        first = (await service.ingest(raw)).to_dict()
        second = (await service.ingest(raw)).to_dict()
        first.pop("receivedAt")
        second.pop("receivedAt")

        assert first == second

    @pytest.mark.asyncio
    async def test_event_isolated_from_later_raw_changes(self):
        service = AttentionIngestionService()
        raw = RawEvent(source="chat", kind="mention", payload={"text": "hi"}, metadata={"audience": "ops"})
        event = await service.ingest(raw)

        raw.metadata["priority"] = 9
        raw.payload["text"] = "changed"

        assert event.metadata == {"audience": "ops"}
        assert event.payload == {"text": "hi"}
        assert event.normalized["payload"] == {"text": "hi"}

    @pytest.mark.asyncio
    async def test_repeat_ingest_shares_no_state(self):
        service = AttentionIngestionService()
        raw = RawEvent(source="chat", kind="mention", metadata={"tags": ["a"]})
        first = await service.ingest(raw)
        second = await service.ingest(raw)

        first.metadata["tags"].append("b")

        assert second.metadata == {"tags": ["a"]}


class TestEnrichers:
    @pytest.mark.asyncio
    async def test_sync_and_async_enrichers_merge(self):
        def sync_enricher(raw):
            return {"channel": raw.metadata.get("channel")}

        async def async_enricher(raw):
            return {"length": len(raw.payload["text"])}

        service = AttentionIngestionService(enrichers=[sync_enricher, async_enricher])
        event = await service.ingest(
            RawEvent(source="chat", kind="mention", payload={"text": "abc"}, metadata={"channel": "C1"})
        )

        assert event.normalized["channel"] == "C1"
        assert event.normalized["length"] == 3
        assert event.normalized["payload"] == {"text": "abc"}

    @pytest.mark.asyncio
    async def test_failing_enricher_is_skipped(self, caplog):
        import logging

        def broken(raw):
            raise RuntimeError("boom")

        def good(raw):
            return {"ok": True}

        service = AttentionIngestionService(enrichers=[broken, good])
        with caplog.at_level(logging.WARNING, logger="herald.attention.ingestion"):
            event = await service.ingest(RawEvent(source="chat", kind="mention"))

        assert event.normalized["ok"] is True
        assert "enricher failed" in caplog.text


class TestRawEventFromDict:
    def test_camel_case_keys(self):
        raw = RawEvent.from_dict({
            "source": "chat",
            "kind": "mention",
            "dedupeKey": "d1",
            "correlationId": "c1",
        })
        assert raw.dedupe_key == "d1"
        assert raw.correlation_id == "c1"
        assert raw.metadata == {}

    def test_non_object_body_rejected(self):
        with pytest.raises(InvalidEvent):
            RawEvent.from_dict(["not", "an", "object"])

    def test_non_object_metadata_rejected(self):
        with pytest.raises(InvalidEvent) as exc_info:
            RawEvent.from_dict({"source": "chat", "kind": "mention", "metadata": "x"})
        assert exc_info.value.field == "metadata"
