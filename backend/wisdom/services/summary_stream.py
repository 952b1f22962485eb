"""
Streaming detail summaries over server-sent events.

A session runs in a fixed order: a short scripted "thinking" animation, a
clear instruction for the client, the upstream model's tokens relayed one
event per chunk, and a completion event. If the upstream stream breaks or
ends without any text, a single fallback paragraph is sent so the client
always ends up with some text.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from wisdom.models import StreamPhase, StreamSession
from wisdom.schemas import StreamEvent
from wisdom.services.llm import TextGenerator

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

THINKING_TEXT = "Analyzing..."
THINKING_DOTS = 3
CLEAR_ALL_CONTENT = "CLEAR_ALL_CONTENT"

KEEPALIVE_COMMENT = ": keepalive\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}

SUMMARY_PROMPT = """
Act as a sharp, insightful commentator for "Synthetic Wisdom".
Based ONLY on the following title and snippet, write a well-structured and detailed summary (approx 4-5 paragraphs, aiming for 250-300 words) in an engaging tone. Inject personality only if appropriate. Ground all statements firmly in the provided text.

Input Text:
Title: "{title}"
Snippet: "{summary}"

Detailed Summary:
"""


def build_summary_prompt(title: str, summary: str) -> str:
    return SUMMARY_PROMPT.format(title=title, summary=summary)


def fallback_summary(title: str) -> str:
    return (
        "Unable to generate a detailed summary for this article due to technical limitations.\n\n"
        f'The article titled "{title}" appears to cover important topics related to AI development '
        "and research. For more information, please read the full article at the original source."
    )


def format_sse(payload: Dict) -> str:
    """Format a payload as one SSE ``data:`` message."""
    return f"data: {json.dumps(payload)}\n\n"


class SummaryStreamer:
    """Produces the event sequence for one detail view."""

    def __init__(
        self,
        llm: TextGenerator,
        thinking_delay: float = 0.15,
        clear_delay: float = 0.1,
        sleep: Sleep = asyncio.sleep,
    ):
        self._llm = llm
        self._thinking_delay = thinking_delay
        self._clear_delay = clear_delay
        self._sleep = sleep

    async def events(self, session: StreamSession) -> AsyncIterator[Dict]:
        """
        Yield event payloads for ``session`` in protocol order.

        Args:
            session: Article being summarized; its phase and accumulated
                text are updated as events are produced

        Yields:
            Dicts shaped like schemas.StreamEvent
        """
        session.phase = StreamPhase.THINKING
        yield {"chunk": THINKING_TEXT, "phase": StreamPhase.THINKING.value}
        for _ in range(THINKING_DOTS):
            await self._sleep(self._thinking_delay)
            yield {"chunk": ".", "phase": StreamPhase.THINKING.value}

        session.phase = StreamPhase.CONTENT_START
        yield {"action": CLEAR_ALL_CONTENT, "phase": StreamPhase.CONTENT_START.value}
        await self._sleep(self._clear_delay)

        session.phase = StreamPhase.REAL_CONTENT
        logger.info('Starting summary stream for "%s"', session.title)
        try:
            upstream = self._llm.stream(build_summary_prompt(session.title, session.summary))
            async with contextlib.aclosing(upstream):
                async for chunk in upstream:
                    if not chunk:
                        continue
                    session.accumulated_text += chunk
                    session.chunks_sent += 1
                    yield {"chunk": chunk, "phase": StreamPhase.REAL_CONTENT.value}
        except Exception as e:
            logger.error('Summary stream error for "%s": %s: %s', session.title, type(e).__name__, e)
            yield self._fallback(session)
        else:
            if session.chunks_sent == 0:
                logger.warning('Summary stream for "%s" returned no text', session.title)
                yield self._fallback(session)

        logger.info(
            'Streaming finished for "%s", total length: %d chars',
            session.title,
            len(session.accumulated_text),
        )
        session.phase = StreamPhase.CONTENT_COMPLETE
        yield {"phase": StreamPhase.CONTENT_COMPLETE.value, "done": True}

    @staticmethod
    def _fallback(session: StreamSession) -> Dict:
        text = fallback_summary(session.title)
        session.accumulated_text += text
        session.used_fallback = True
        return {"chunk": text, "phase": StreamPhase.REAL_CONTENT.value}


async def sse_stream(streamer: SummaryStreamer, session: StreamSession) -> AsyncIterator[str]:
    """
    Frame a session's events as SSE text.

    Failures outside the upstream call end the stream with one error event.
    """
    yield KEEPALIVE_COMMENT
    try:
        async for event in streamer.events(session):
            yield format_sse(StreamEvent(**event).model_dump(exclude_none=True))
    except Exception as e:
        logger.exception('Summary stream failed for "%s"', session.title)
        yield format_sse({"error": "Failed to generate summary stream.", "details": str(e) or "Unknown error"})
    finally:
        logger.info('Stream ended for "%s"', session.title)


async def single_event_stream(payload: Dict) -> AsyncIterator[str]:
    yield format_sse(payload)


def missing_stream_params(url: Optional[str], title: Optional[str], summary: Optional[str]) -> bool:
    return not (url and title and summary)
