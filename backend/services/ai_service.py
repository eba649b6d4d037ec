"""
AI Service - Claude Streaming for the Performance Summary

Builds a context message from the KPI snapshot and period comparison of the
current filter state and streams a narrative summary from the Anthropic API
as server-sent events.

Event sequence: meta, token*, then done or error. A finished summary is
cached under its context key; a repeat request replays it as one token event
with done.cached = true.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Generator, Optional

from config import Config
from constants import DISTRICT_LABEL
from services.dashboard_service import TTLCache
from services.json_serializer import safe_json_dumps

logger = logging.getLogger(__name__)


class AINotConfiguredError(RuntimeError):
    """ANTHROPIC_API_KEY is not set."""
    pass


@dataclass
class StreamEvent:
    """Represents a single SSE event."""
    event_type: str  # 'meta', 'token', 'done', 'error'
    data: dict

    def to_sse(self) -> str:
        """Format as SSE data line."""
        return f"data: {json.dumps(self.data)}\n\n"


SYSTEM_PROMPT = f"""You are a property market analyst writing a short performance summary for a dashboard of landed home transactions in {DISTRICT_LABEL}, Singapore.

Write in Markdown:
- One opening sentence with the headline finding
- 3-5 bullet points covering volume, price per square foot, profit and notable period-over-period changes
- One closing line on sample size and the period covered

Use only the numbers provided. Do not predict future prices. Treat missing comparisons as "not available", not as zero.
"""


def _build_user_message(context: Dict[str, Any]) -> str:
    """
    Build the user message from the dashboard context.

    Structures the message with clear sections for the AI to parse.
    """
    parts = []

    filters = context.get('filters') or {}
    active = {k: v for k, v in filters.items() if v}
    parts.append("## Active Filters")
    if active:
        parts.append(", ".join(f"{k}={v}" for k, v in active.items()))
    else:
        parts.append("None (all transactions)")

    parts.append("\n## KPI Snapshot")
    parts.append("```json")
    parts.append(safe_json_dumps(context.get('kpis'), indent=2))
    parts.append("```")

    parts.append("\n## Period Comparison")
    parts.append("```json")
    parts.append(safe_json_dumps(context.get('comparison'), indent=2))
    parts.append("```")

    parts.append("\n## Task")
    parts.append("Summarize the performance of this selection for a buyer or seller.")

    return "\n".join(parts)


def context_cache_key(context: Dict[str, Any]) -> str:
    """Stable key for a summary context (echoed in the meta event)."""
    digest = hashlib.md5(safe_json_dumps(context, sort_keys=True).encode()).hexdigest()
    return f"summary:{digest[:16]}"


class AIService:
    """
    Service for the AI performance summary.

    Uses Anthropic Claude API with streaming for responsive UX.
    """

    def __init__(self, client=None, cache: Optional[TTLCache] = None):
        self._client = client
        self._cache = cache if cache is not None else TTLCache(
            maxsize=Config.AI_SUMMARY_CACHE_MAX_SIZE,
            ttl=Config.AI_SUMMARY_CACHE_TTL_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(Config.ANTHROPIC_API_KEY)

    @property
    def client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            if not Config.ANTHROPIC_API_KEY:
                raise AINotConfiguredError("ANTHROPIC_API_KEY not configured")

            import anthropic
            self._client = anthropic.Anthropic(api_key=Config.ANTHROPIC_API_KEY)

        return self._client

    def stream_summary(self, context: Dict[str, Any]) -> Generator[StreamEvent, None, None]:
        """
        Stream a performance summary for one dashboard context.

        Args:
            context: {filters, kpis, comparison, meta}

        Yields:
            StreamEvent objects for SSE delivery
        """
        cache_key = context_cache_key(context)
        yield StreamEvent(
            event_type="meta",
            data={
                "type": "meta",
                "version": (context.get('meta') or {}).get('version'),
                "cache_key": cache_key,
                "model": Config.AI_MODEL,
            }
        )

        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"AI summary cache hit: {cache_key}")
            yield StreamEvent(
                event_type="token",
                data={"type": "token", "content": cached}
            )
            yield StreamEvent(
                event_type="done",
                data={"type": "done", "cached": True}
            )
            return

        user_message = _build_user_message(context)

        try:
            chunks = []
            with self.client.messages.stream(
                model=Config.AI_MODEL,
                max_tokens=Config.AI_MAX_TOKENS,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": user_message}],
            ) as stream:
                for text in stream.text_stream:
                    chunks.append(text)
                    yield StreamEvent(
                        event_type="token",
                        data={"type": "token", "content": text}
                    )

            self._cache.set(cache_key, "".join(chunks))
            yield StreamEvent(
                event_type="done",
                data={"type": "done", "cached": False}
            )

        except Exception as e:
            logger.error(f"AI summary error: {e}")
            yield StreamEvent(
                event_type="error",
                data={
                    "type": "error",
                    "message": str(e) if Config.DEBUG else "AI service temporarily unavailable"
                }
            )

    def summarize(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Non-streaming version for the CLI or testing.

        Returns complete response instead of streaming.
        """
        cache_key = context_cache_key(context)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return {"content": cached, "cache_key": cache_key, "cached": True}

        response = self.client.messages.create(
            model=Config.AI_MODEL,
            max_tokens=Config.AI_MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": _build_user_message(context)}],
        )
        content = response.content[0].text
        self._cache.set(cache_key, content)
        return {"content": content, "cache_key": cache_key, "cached": False}


# Module-level singleton
_ai_service: Optional[AIService] = None


def get_ai_service() -> AIService:
    """Get the singleton AIService instance."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service


def set_ai_service(service: Optional[AIService]) -> None:
    """Install a service instance (tests)."""
    global _ai_service
    _ai_service = service
