"""
Tests for the AI performance summary service.

The Anthropic client is mocked; no request leaves the process.
"""
import json

import pytest
from unittest.mock import MagicMock

from config import Config
from services.ai_service import (
    AINotConfiguredError,
    AIService,
    SYSTEM_PROMPT,
    StreamEvent,
    _build_user_message,
    context_cache_key,
    get_ai_service,
    set_ai_service,
)


@pytest.fixture
def context():
    return {
        'filters': {'propertyTypes': ['Terrace'], 'tenures': [], 'startDate': None},
        'kpis': {'variant': 'extended', 'total_transactions': 3, 'average_profit': 800000.0},
        'comparison': {'anchor_date': '2025-09-22T00:00:00+00:00', 'comparisons': []},
        'meta': {'version': 4},
    }


def _client_streaming(chunks):
    client = MagicMock()
    stream = client.messages.stream.return_value.__enter__.return_value
    stream.text_stream = iter(chunks)
    return client


class TestStreamEvent:

    def test_to_sse(self):
        event = StreamEvent(event_type="token", data={"type": "token", "content": "hi"})
        assert event.to_sse() == 'data: {"type": "token", "content": "hi"}\n\n'


class TestUserMessage:

    def test_only_active_filters_listed(self, context):
        message = _build_user_message(context)
        assert "propertyTypes=['Terrace']" in message
        assert "tenures" not in message.split("## KPI Snapshot")[0]

    def test_no_filters(self, context):
        context['filters'] = {}
        assert "None (all transactions)" in _build_user_message(context)

    def test_sections_present(self, context):
        message = _build_user_message(context)
        for heading in ("## Active Filters", "## KPI Snapshot", "## Period Comparison", "## Task"):
            assert heading in message
        assert '"average_profit": 800000.0' in message

    def test_system_prompt_names_district(self):
        assert "District 16" in SYSTEM_PROMPT


class TestContextCacheKey:

    def test_stable(self, context):
        assert context_cache_key(context) == context_cache_key(dict(context))
        assert context_cache_key(context).startswith("summary:")

    def test_changes_with_context(self, context):
        other = dict(context, meta={'version': 5})
        assert context_cache_key(context) != context_cache_key(other)


class TestAIService:

    def test_is_configured_with_client(self, monkeypatch):
        monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", None)
        assert AIService(client=MagicMock()).is_configured
        assert not AIService().is_configured

    def test_client_requires_key(self, monkeypatch):
        monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", None)
        with pytest.raises(AINotConfiguredError):
            AIService().client

    def test_stream_event_sequence(self, context):
        client = _client_streaming(["Terrace ", "volume doubled."])
        events = list(AIService(client=client).stream_summary(context))

        assert [e.event_type for e in events] == ["meta", "token", "token", "done"]
        assert events[0].data["version"] == 4
        assert events[0].data["cache_key"] == context_cache_key(context)
        assert events[1].data == {"type": "token", "content": "Terrace "}
        assert events[-1].data == {"type": "done", "cached": False}

        kwargs = client.messages.stream.call_args.kwargs
        assert kwargs["model"] == Config.AI_MODEL
        assert kwargs["max_tokens"] == Config.AI_MAX_TOKENS
        assert kwargs["system"] == SYSTEM_PROMPT

    def test_stream_error_event(self, context, monkeypatch):
        monkeypatch.setattr(Config, "DEBUG", False)
        client = MagicMock()
        client.messages.stream.side_effect = RuntimeError("overloaded")

        events = list(AIService(client=client).stream_summary(context))

        assert [e.event_type for e in events] == ["meta", "error"]
        assert events[-1].data["message"] == "AI service temporarily unavailable"
        json.loads(events[-1].to_sse()[len("data: "):])

    def test_repeat_context_replays_cached_summary(self, context):
        client = _client_streaming(["Terrace ", "volume doubled."])
        service = AIService(client=client)
        list(service.stream_summary(context))

        events = list(service.stream_summary(context))

        assert [e.event_type for e in events] == ["meta", "token", "done"]
        assert events[1].data["content"] == "Terrace volume doubled."
        assert events[-1].data == {"type": "done", "cached": True}
        client.messages.stream.assert_called_once()

    def test_failed_stream_not_cached(self, context):
        client = MagicMock()
        client.messages.stream.side_effect = RuntimeError("overloaded")
        service = AIService(client=client)

        list(service.stream_summary(context))
        events = list(service.stream_summary(context))

        assert events[-1].event_type == "error"
        assert client.messages.stream.call_count == 2

    def test_summarize_cached_on_repeat(self, context):
        client = MagicMock()
        client.messages.create.return_value.content = [MagicMock(text="Prices held steady.")]
        service = AIService(client=client)

        service.summarize(context)
        result = service.summarize(context)

        assert result == {
            "content": "Prices held steady.",
            "cache_key": context_cache_key(context),
            "cached": True,
        }
        client.messages.create.assert_called_once()

    def test_summarize(self, context):
        client = MagicMock()
        client.messages.create.return_value.content = [MagicMock(text="Prices held steady.")]

        result = AIService(client=client).summarize(context)

        assert result["content"] == "Prices held steady."
        assert result["cached"] is False


class TestSingleton:

    def test_set_and_reset(self):
        service = AIService(client=MagicMock())
        set_ai_service(service)
        try:
            assert get_ai_service() is service
        finally:
            set_ai_service(None)
        assert get_ai_service() is not service
        set_ai_service(None)
