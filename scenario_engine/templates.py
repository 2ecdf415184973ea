"""Static scenario catalog for the chat demo.

Each scenario is a scripted dialogue that alternates user and AI turns,
starting with the user. The catalog, the keyword rules and the ad format
lookup are built once at import time and are read-only afterwards.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, TypedDict


class ScenarioType(str, Enum):
    # Action card scenarios
    ENGLISH = "english"
    PROGRAMMING = "programming"
    PROGRAMMING_JA = "programming_ja"
    TRAVEL = "travel"

    # Format test scenarios
    LEAD_GEN = "lead_gen"
    STATIC_AD = "static_ad"
    FOLLOWUP = "followup"


class ScenarioTurnDef(TypedDict):
    role: str
    text: str


class ScenarioDef(TypedDict):
    id: ScenarioType
    title: str
    description: str
    turns: Tuple[ScenarioTurnDef, ...]


class KeywordRule(TypedDict):
    scenario: ScenarioType
    keywords: Tuple[str, ...]


_SCENARIOS: Dict[ScenarioType, ScenarioDef] = {}


def _turns(*pairs: Tuple[str, str]) -> Tuple[ScenarioTurnDef, ...]:
    return tuple({"role": role, "text": text} for role, text in pairs)


def _validate_turns(scenario_id: ScenarioType, turns: Tuple[ScenarioTurnDef, ...]) -> None:
    for index, turn in enumerate(turns):
        expected = "user" if index % 2 == 0 else "ai"
        if turn["role"] != expected:
            raise ValueError(
                f"Scenario {scenario_id.value!r}: turn {index} must be {expected!r}, got {turn['role']!r}"
            )


def _register(scenario: ScenarioDef) -> None:
    _validate_turns(scenario["id"], scenario["turns"])
    _SCENARIOS[scenario["id"]] = scenario


_register(
    {
        "id": ScenarioType.ENGLISH,
        "title": "English learning",
        "description": "Language practice conversation ending in a request for an AI English conversation app.",
        "turns": _turns(
            ("user", "I want to get better at communicating in another language. Where should I begin?"),
            ("ai", "A good start is to build daily speaking habits. Even short self-talk or reading aloud helps."),
            ("user", "How can I check whether my pronunciation sounds natural?"),
            ("ai", "Recording your voice and comparing it with native speakers is very effective."),
            ("user", "I often forget new words I try to memorize. Any tips?"),
            ("ai", "Using spaced repetition is helpful. Simple flashcards can improve long-term memory."),
            ("user", "I also want to practice more natural interactions."),
            ("ai", "Role-playing everyday scenes is a great way to build confidence and fluency."),
            ("user", "Is there any good AI English conversation app you recommend?"),
            ("ai", "There are several options. Let me check what might suit your learning style."),
        ),
    }
)

_register(
    {
        "id": ScenarioType.PROGRAMMING,
        "title": "Programming learning",
        "description": "Getting into tech, ending in a request for an AI coding course.",
        "turns": _turns(
            ("user", "I'm thinking about getting into tech, but I'm not sure where to start. Any suggestions?"),
            ("ai", "A good entry point is understanding basic problem-solving and logic. Many beginners start with simple tasks to build confidence."),
            ("user", "Should I focus more on understanding concepts first or try building something right away?"),
            ("ai", "Starting with small hands-on exercises works well. You can pick up the ideas behind them naturally over time."),
            ("user", "I sometimes lose motivation when things get too difficult. Any advice?"),
            ("ai", "Setting small, clear goals helps. Even completing one simple task a day creates steady progress."),
            ("user", "What about fixing mistakes? I get stuck pretty easily."),
            ("ai", "Breaking problems down and checking each part step by step usually helps reveal what's going wrong."),
            ("user", "Do you know any good AI coding course that can help me learn faster?"),
            ("ai", "There are a few options depending on your learning style. Let me take a look."),
        ),
    }
)

_register(
    {
        "id": ScenarioType.PROGRAMMING_JA,
        "title": "Programming learning (Japanese)",
        "description": "Japanese version of the programming conversation; the default when nothing else matches.",
        "turns": _turns(
            ("user", "テック業界に興味があるのですが、どこから始めればいいのか分かりません。何かアドバイスはありますか？"),
            ("ai", "まずは基本的な問題解決力やロジックを理解することが良い入口になります。多くの初心者は、簡単な課題から始めて自信をつけています。"),
            ("user", "最初は概念の理解を重視したほうがいいですか？それとも、すぐに何か作ってみるべきでしょうか？"),
            ("ai", "小さなハンズオンの練習から始めるのがおすすめです。実際に手を動かしながら、自然と考え方を身につけられます。"),
            ("user", "難しくなると、モチベーションが下がってしまうことがあります。何か良い対処法はありますか？"),
            ("ai", "小さくて明確な目標を設定することが大切です。1日に1つ簡単なタスクを終えるだけでも、着実な前進になります。"),
            ("user", "ミスを修正するときに詰まってしまいます。どうすればいいでしょうか？"),
            ("ai", "問題を細かく分解して、一つずつ確認していくと、原因が見えてくることが多いです。"),
            ("user", "学習を早く進められる、良いAIコーディングコースを知っていますか？"),
            ("ai", "学習スタイルによっていくつか選択肢があります。少し調べてみますね。"),
        ),
    }
)

_register(
    {
        "id": ScenarioType.TRAVEL,
        "title": "Travel planning",
        "description": "Planning time off somewhere warm, ending in a request for a nice hotel.",
        "turns": _turns(
            ("user", "I'm thinking about taking some time off soon. Any ideas for places that might be refreshing?"),
            ("ai", "It depends on the atmosphere you enjoy. Do you prefer quiet places, lively areas, or somewhere close to nature?"),
            ("user", "I want somewhere calm but still interesting. Ideally somewhere warm."),
            ("ai", "In that case, regions with mild climates could be a good fit. Many people enjoy spots where they can unwind but also explore a bit."),
            ("user", "I haven't really traveled much, so I'm open to new places. When is a good season to go somewhere warm?"),
            ("ai", "Late spring or early autumn tends to be comfortable in many destinations—pleasant weather and not too crowded."),
            ("user", "That sounds nice. I think I'll pick a warm coastal area then."),
            ("ai", "Great. Are your dates already decided, or are you still thinking about it?"),
            ("user", "Do you know any nice hotel around there?"),
            ("ai", "There are several options depending on your budget and style. Let me check what might be a good fit."),
        ),
    }
)

_register(
    {
        "id": ScenarioType.LEAD_GEN,
        "title": "Lead generation",
        "description": "Newsletter conversation exercising the lead_gen format (impression, submit).",
        "turns": _turns(
            ("user", "I'd like to stay updated on the latest newsletter and industry trends."),
            ("ai", "That's great! Staying informed helps you make better decisions. Are you interested in any specific topics?"),
            ("user", "Mainly technology and business innovations."),
            ("ai", "Those are popular topics. Many professionals find curated newsletters save time compared to browsing multiple sources."),
            ("user", "Exactly. I don't have time to check every website."),
            ("ai", "Understandable. A good newsletter delivers key insights directly to your inbox."),
            ("user", "Can you recommend a way to subscribe to quality updates?"),
            ("ai", "Let me find some options for you."),
        ),
    }
)

_register(
    {
        "id": ScenarioType.STATIC_AD,
        "title": "Static ad",
        "description": "Events and promotions conversation exercising the static format (impression, click).",
        "turns": _turns(
            ("user", "I heard there's a big event coming up. Any promotion or deal I should know about?"),
            ("ai", "There are always interesting events and promotions happening. What kind of event are you looking for?"),
            ("user", "Something related to tech or startups would be great."),
            ("ai", "Tech conferences and startup events are popular this time of year. They often have early-bird discounts."),
            ("user", "That sounds interesting. Are there any online events too?"),
            ("ai", "Yes, many events now offer hybrid formats. You can attend virtually if the venue is too far."),
            ("user", "Perfect. Can you show me what's available?"),
            ("ai", "Let me check the current promotions for you."),
        ),
    }
)

_register(
    {
        "id": ScenarioType.FOLLOWUP,
        "title": "Followup engagement",
        "description": "Product feedback conversation exercising the followup format (impression, option_tap).",
        "turns": _turns(
            ("user", "I'd like to share my feedback about a product I recently used."),
            ("ai", "That's helpful! Feedback helps companies improve their products. What kind of product was it?"),
            ("user", "It was a productivity app. I have some opinions about its features."),
            ("ai", "Productivity apps benefit greatly from user feedback. Was it generally positive or did you find issues?"),
            ("user", "Mixed. Some features are great, but others need improvement."),
            ("ai", "That's valuable insight. Detailed feedback like yours helps prioritize development."),
            ("user", "Is there a survey or way to submit my opinion officially?"),
            ("ai", "Let me find an appropriate feedback channel for you."),
        ),
    }
)


SCENARIOS: Mapping[ScenarioType, ScenarioDef] = MappingProxyType(_SCENARIOS)

# Scanned in order; overlapping keywords resolve to the earlier rule.
KEYWORD_RULES: Tuple[KeywordRule, ...] = (
    {"scenario": ScenarioType.ENGLISH, "keywords": ("communicating", "another", "language")},
    {"scenario": ScenarioType.PROGRAMMING, "keywords": ("tech",)},
    {"scenario": ScenarioType.TRAVEL, "keywords": ("off", "places", "refreshing")},
    {"scenario": ScenarioType.LEAD_GEN, "keywords": ("newsletter", "subscribe", "updates")},
    {"scenario": ScenarioType.STATIC_AD, "keywords": ("event", "promotion", "deal")},
    {"scenario": ScenarioType.FOLLOWUP, "keywords": ("feedback", "survey", "opinion")},
)

AD_FORMATS: Mapping[ScenarioType, FrozenSet[str]] = MappingProxyType(
    {
        ScenarioType.ENGLISH: frozenset({"action_card"}),
        ScenarioType.PROGRAMMING: frozenset({"action_card"}),
        ScenarioType.PROGRAMMING_JA: frozenset({"action_card"}),
        ScenarioType.TRAVEL: frozenset({"action_card"}),
        ScenarioType.LEAD_GEN: frozenset({"lead_gen"}),
        ScenarioType.STATIC_AD: frozenset({"static"}),
        ScenarioType.FOLLOWUP: frozenset({"followup"}),
    }
)


def keywords_for(scenario_id: ScenarioType) -> List[str]:
    """Trigger keywords for a scenario, empty when it is only reachable as a fallback."""
    for rule in KEYWORD_RULES:
        if rule["scenario"] == scenario_id:
            return list(rule["keywords"])
    return []


def ad_formats_for(scenario_id: Optional[ScenarioType]) -> Optional[FrozenSet[str]]:
    """Preferred ad formats for a scenario; None means no restriction."""
    if scenario_id is None:
        return None
    return AD_FORMATS.get(scenario_id)


def get_all_summaries() -> List[dict]:
    """Return lightweight summaries for listing."""
    return [
        {
            "id": s["id"].value,
            "title": s["title"],
            "description": s["description"],
            "turn_count": len(s["turns"]),
            "keywords": keywords_for(s["id"]),
            "ad_formats": sorted(AD_FORMATS.get(s["id"], ())),
        }
        for s in SCENARIOS.values()
    ]


def load_scenario(scenario_id: str) -> Optional[ScenarioDef]:
    """Return the full scenario definition for a given id."""
    try:
        return SCENARIOS.get(ScenarioType(scenario_id))
    except ValueError:
        return None
