"""Chat session: drives the scenario engine for each user submission.

Keeps the ordered transcript (user, ai and ad entries) and requests an ad
after every AI reply. Ad failures are treated as "no ad available".
"""

from __future__ import annotations

import datetime as dt
import logging
import random
import uuid
from typing import Callable, List, Optional, Tuple

from ceed_ads import CeedAdsError

from .state_machine import ScenarioEngine

logger = logging.getLogger(__name__)

FALLBACK_GREETING = (
    "I can assist with English learning, programming, or travel planning. "
    "Which one are you interested in?"
)
COMPLETION_MESSAGE = "Thanks! Let me know if you need anything else."

DEFAULT_DELAY_RANGE: Tuple[float, float] = (0.7, 1.3)


def make_message(role: str, text: str = "", ad=None, request_id: Optional[str] = None) -> dict:
    return {
        "id": str(uuid.uuid4()),
        "role": role,
        "text": text,
        "timestamp": dt.datetime.now(dt.timezone.utc),
        "ad": ad,
        "request_id": request_id,
    }


class ChatSession:
    def __init__(
        self,
        engine: Optional[ScenarioEngine] = None,
        ad_client=None,
        conversation_id: Optional[str] = None,
        delay_range: Tuple[float, float] = DEFAULT_DELAY_RANGE,
        rng: Optional[random.Random] = None,
        ad_client_provider: Optional[Callable[[], object]] = None,
    ):
        """``ad_client_provider`` is called before every ad request and takes
        precedence over a fixed ``ad_client``, so a re-initialized SDK client
        is picked up by sessions created earlier.
        """
        self.engine = engine or ScenarioEngine()
        self.ad_client = ad_client
        self._ad_client_provider = ad_client_provider
        self.conversation_id = conversation_id or f"demo-conv-{uuid.uuid4().hex[:12]}"
        low, high = (max(0.0, float(v)) for v in delay_range)
        self.delay_range = (min(low, high), max(low, high))
        self._rng = rng or random.Random()
        self._messages: List[dict] = []

    @property
    def messages(self) -> List[dict]:
        return list(self._messages)

    def send_message(self, text: str) -> List[dict]:
        """Handle one user submission; returns the transcript entries it appended."""
        user_text = (text or "").strip()
        if not user_text:
            return []

        start = len(self._messages)
        self._messages.append(make_message("user", user_text))

        reply = self._reply_for(user_text)
        if reply is not None:
            self._messages.append(make_message("ai", reply))
            self._append_ad(user_text)

        return self._messages[start:]

    def _reply_for(self, user_text: str) -> Optional[str]:
        engine = self.engine
        if not engine.has_active_scenario:
            detected = engine.detect(user_text)
            if detected is None:
                return FALLBACK_GREETING
            logger.info("[%s] scenario detected: %s", self.conversation_id, getattr(detected, "value", detected))
            engine.start(detected)
            return engine.next_reply()

        if engine.is_finished():
            return COMPLETION_MESSAGE

        return engine.next_reply()

    def _current_ad_client(self):
        if self._ad_client_provider is not None:
            return self._ad_client_provider()
        return self.ad_client

    def _append_ad(self, context_text: str) -> None:
        client = self._current_ad_client()
        if client is None:
            return
        try:
            ad, request_id = client.request_ad(
                conversation_id=self.conversation_id,
                message_id=str(uuid.uuid4()),
                context_text=context_text,
                formats=self.engine.preferred_formats(),
            )
        except CeedAdsError as e:
            logger.warning("[%s] ad request failed, continuing without ad: %s", self.conversation_id, e)
            return
        if ad is not None:
            self._messages.append(make_message("ad", ad=ad, request_id=request_id))

    def next_reply_delay(self) -> float:
        """Cosmetic pause before a reply is shown, in seconds."""
        return self._rng.uniform(*self.delay_range)

    def clear(self) -> None:
        self._messages = []
        self.engine.reset()

    def state(self) -> dict:
        return {"conversation_id": self.conversation_id, **self.engine.snapshot()}
