"""Scenario detection and progression state machine."""

from __future__ import annotations

from typing import FrozenSet, Hashable, Mapping, Optional, Sequence

from .templates import (
    KEYWORD_RULES,
    SCENARIOS,
    KeywordRule,
    ScenarioDef,
    ScenarioType,
    ad_formats_for,
)

DEFAULT_FALLBACK: Optional[ScenarioType] = ScenarioType.PROGRAMMING_JA


def parse_fallback(name: Optional[str]) -> Optional[ScenarioType]:
    """Map a configured fallback name to a scenario; "none" selects the no-match policy.

    Raises ValueError for names that are not scenario ids.
    """
    if not name:
        return DEFAULT_FALLBACK
    if name.strip().lower() == "none":
        return None
    return ScenarioType(name.strip().lower())


class ScenarioEngine:
    """Plays back one scripted scenario at a time.

    The scenario alternates user[0], ai[1], user[2], ai[3], ... After the
    user turn at the cursor, the reply is the AI turn right after it, and the
    cursor moves past both.

    ``fallback`` decides what ``detect`` returns for text that matches no
    keyword rule: a scenario id (the default scenario policy) or ``None``
    (the no-match policy, where the caller shows a clarifying message).

    Not safe for concurrent use; callers serialize access per instance.
    """

    def __init__(
        self,
        scenarios: Optional[Mapping[Hashable, ScenarioDef]] = None,
        keyword_rules: Optional[Sequence[KeywordRule]] = None,
        fallback: Optional[Hashable] = DEFAULT_FALLBACK,
    ):
        self._scenarios = SCENARIOS if scenarios is None else scenarios
        self._rules = KEYWORD_RULES if keyword_rules is None else tuple(keyword_rules)
        self._fallback = fallback
        self._active: Optional[Hashable] = None
        self._cursor = 0

    @property
    def fallback(self) -> Optional[Hashable]:
        return self._fallback

    @property
    def active_scenario(self) -> Optional[Hashable]:
        return self._active

    @property
    def turn_cursor(self) -> int:
        return self._cursor

    @property
    def has_active_scenario(self) -> bool:
        return self._active is not None

    def detect(self, text: str) -> Optional[Hashable]:
        """Return the scenario of the first keyword rule matching ``text``."""
        lower = (text or "").lower()
        for rule in self._rules:
            if any(keyword in lower for keyword in rule["keywords"]):
                return rule["scenario"]
        return self._fallback

    def start(self, scenario_id: Hashable) -> None:
        """Begin ``scenario_id`` from its first turn, abandoning any run in progress.

        An id missing from the catalog starts a run that is already finished.
        """
        self._active = scenario_id
        self._cursor = 0

    def next_reply(self) -> Optional[str]:
        """Consume and return the next AI turn, or None when there is none left."""
        turns = self._active_turns()
        if turns is None:
            return None

        ai_index = self._cursor + 1
        if ai_index >= len(turns):
            return None

        reply = turns[ai_index]["text"]
        self._cursor += 2
        return reply

    def is_finished(self) -> bool:
        turns = self._active_turns()
        if turns is None:
            return True
        # A trailing user turn has no reply, so odd-length scripts end one turn early.
        return self._cursor + 1 >= len(turns)

    def reset(self) -> None:
        self._active = None
        self._cursor = 0

    def preferred_formats(self) -> Optional[FrozenSet[str]]:
        """Ad format hint for the active scenario; None when unrestricted."""
        if not isinstance(self._active, ScenarioType):
            return None
        return ad_formats_for(self._active)

    def snapshot(self) -> dict:
        active = self._active
        return {
            "active_scenario": active.value if isinstance(active, ScenarioType) else active,
            "turn_cursor": self._cursor,
            "finished": self.is_finished(),
        }

    def _active_turns(self):
        if self._active is None:
            return None
        scenario = self._scenarios.get(self._active)
        if scenario is None:
            return None
        return scenario["turns"]
