"""
Session state for the portrait page.

One ``PortraitSession`` per browser (or chat). It owns the four-field state
the page renders from and the prompt, and it is the only thing that calls
the transformer.

A transform that settles after ``reset()`` or a new ``upload()`` is dropped:
every such call bumps a generation counter and the transform only applies
its outcome when the generation it started with is still current.
"""

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

from .image_client import FALLBACK_MESSAGE, encode_image
from .prompts import DEFAULT_PROMPT

logger = logging.getLogger(__name__)

Transformer = Callable[[str, str], Awaitable[str]]


@dataclass
class SessionState:
    original_image: Optional[str] = None
    edited_image: Optional[str] = None
    is_loading: bool = False
    last_error: Optional[str] = None


class PortraitSession:
    """Upload / prompt / transform / reset for a single user."""

    def __init__(self, transformer: Transformer, prompt: Optional[str] = None):
        self._transformer = transformer
        self._generation = 0
        self.state = SessionState()
        self.prompt = prompt or DEFAULT_PROMPT

    def upload(self, data: bytes, mime_type: Optional[str] = None) -> SessionState:
        """Store a new original image and forget any previous result or error."""
        self._generation += 1
        self.state = SessionState(original_image=encode_image(data, mime_type))
        logger.info("📥 Image uploaded (%d bytes)", len(data))
        return self.state

    def set_prompt(self, text: Optional[str]) -> str:
        """Store the prompt; blank text falls back to the built-in one."""
        text = (text or "").strip()
        self.prompt = text or DEFAULT_PROMPT
        return self.prompt

    async def transform(self) -> SessionState:
        """
        Run one transform for the current original image.

        No-op without an original image or while another transform is in flight.
        """
        if not self.state.original_image or self.state.is_loading:
            return self.state

        generation = self._generation
        state = self.state
        state.is_loading = True
        state.last_error = None

        try:
            edited = await self._transformer(state.original_image, self.prompt)
        except Exception as e:
            if generation != self._generation:
                logger.info("Discarding stale transform failure: %s", e)
            else:
                logger.error(f"❌ Transform failed: {e}")
                state.last_error = str(e) or FALLBACK_MESSAGE
        else:
            if generation != self._generation:
                logger.info("Discarding stale transform result")
            else:
                logger.info("✅ Transform finished")
                state.edited_image = edited
        finally:
            # also on cancellation, so the session never stays stuck loading
            if generation == self._generation:
                state.is_loading = False
        return state

    def reset(self) -> SessionState:
        """Back to the empty state; an in-flight transform is left to finish and ignored."""
        self._generation += 1
        self.state = SessionState()
        return self.state

    def snapshot(self) -> Dict[str, Any]:
        data = asdict(self.state)
        data["prompt"] = self.prompt
        return data


class SessionStore:
    """Keyed ``PortraitSession`` registry; the oldest session is evicted past ``max_sessions``."""

    def __init__(self, transformer: Transformer, max_sessions: int = 1000):
        self._transformer = transformer
        self._max_sessions = max_sessions
        self._sessions: "OrderedDict[Hashable, PortraitSession]" = OrderedDict()

    def get(self, key: Hashable) -> PortraitSession:
        session = self._sessions.get(key)
        if session is None:
            session = PortraitSession(self._transformer)
            self._sessions[key] = session
            while len(self._sessions) > self._max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Evicted session %s", evicted)
        else:
            self._sessions.move_to_end(key)
        return session

    def discard(self, key: Hashable) -> None:
        self._sessions.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
