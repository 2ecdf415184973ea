"""Unit tests for scenario detection and progression."""

import unittest

from scenario_engine import templates
from scenario_engine.state_machine import DEFAULT_FALLBACK, ScenarioEngine, parse_fallback
from scenario_engine.templates import SCENARIOS, ScenarioType


def _ai_turns(scenario_id):
    return [t["text"] for t in SCENARIOS[scenario_id]["turns"] if t["role"] == "ai"]


class TestDetection(unittest.TestCase):
    """Keyword rules are scanned in declaration order, case-insensitively."""

    def setUp(self):
        self.engine = ScenarioEngine()

    def test_each_rule_keyword_detects_its_scenario(self):
        """Every declared keyword should select its scenario."""
        for rule in templates.KEYWORD_RULES:
            for keyword in rule["keywords"]:
                with self.subTest(keyword=keyword):
                    self.assertEqual(self.engine.detect(f"xx {keyword} yy"), rule["scenario"])

    def test_detection_is_case_insensitive(self):
        self.assertEqual(self.engine.detect("TECH"), ScenarioType.PROGRAMMING)
        self.assertEqual(self.engine.detect("tech"), ScenarioType.PROGRAMMING)
        self.assertEqual(self.engine.detect("Any Promotion today?"), ScenarioType.STATIC_AD)

    def test_first_declared_rule_wins(self):
        """Overlapping matches resolve to the earlier rule."""
        # english is declared before programming
        self.assertEqual(self.engine.detect("tech in another language"), ScenarioType.ENGLISH)
        # programming is declared before static_ad
        self.assertEqual(self.engine.detect("a tech deal"), ScenarioType.PROGRAMMING)
        # travel ("off") is declared before followup
        self.assertEqual(self.engine.detect("time off and a survey"), ScenarioType.TRAVEL)

    def test_unmatched_text_uses_default_scenario(self):
        self.assertEqual(self.engine.detect("Hello there"), ScenarioType.PROGRAMMING_JA)
        self.assertEqual(self.engine.detect("こんにちは"), ScenarioType.PROGRAMMING_JA)
        self.assertEqual(self.engine.detect(""), ScenarioType.PROGRAMMING_JA)

    def test_unmatched_text_with_no_match_policy(self):
        engine = ScenarioEngine(fallback=None)
        self.assertIsNone(engine.detect("Hello there"))
        self.assertEqual(engine.detect("tech"), ScenarioType.PROGRAMMING)

    def test_detect_has_no_side_effects(self):
        self.engine.detect("tech")
        self.assertFalse(self.engine.has_active_scenario)
        self.assertEqual(self.engine.turn_cursor, 0)


class TestProgression(unittest.TestCase):
    """Playback of scripted AI turns."""

    def test_tech_careers_end_to_end(self):
        engine = ScenarioEngine()
        detected = engine.detect("I want advice about tech careers")
        self.assertEqual(detected, ScenarioType.PROGRAMMING)

        engine.start(detected)
        self.assertEqual(engine.next_reply(), SCENARIOS[ScenarioType.PROGRAMMING]["turns"][1]["text"])

    def test_replies_come_in_order_until_exhausted(self):
        for scenario_id in ScenarioType:
            with self.subTest(scenario=scenario_id.value):
                engine = ScenarioEngine()
                engine.start(scenario_id)
                replies = []
                while not engine.is_finished():
                    replies.append(engine.next_reply())

                self.assertEqual(replies, _ai_turns(scenario_id))
                self.assertIsNone(engine.next_reply())
                self.assertTrue(engine.is_finished())

    def test_eight_turn_scenario_yields_four_replies(self):
        engine = ScenarioEngine()
        engine.start(ScenarioType.LEAD_GEN)
        self.assertEqual(len(SCENARIOS[ScenarioType.LEAD_GEN]["turns"]), 8)

        replies = [engine.next_reply() for _ in range(4)]
        self.assertNotIn(None, replies)
        self.assertEqual(replies[-1], "Let me find some options for you.")
        self.assertEqual(engine.turn_cursor, 8)
        self.assertIsNone(engine.next_reply())
        self.assertTrue(engine.is_finished())

    def test_odd_length_scenario_stops_before_trailing_user_turn(self):
        scenarios = {
            "short": {
                "id": "short",
                "title": "Short",
                "description": "",
                "turns": (
                    {"role": "user", "text": "hi"},
                    {"role": "ai", "text": "hello"},
                    {"role": "user", "text": "bye"},
                ),
            }
        }
        engine = ScenarioEngine(scenarios=scenarios, keyword_rules=[], fallback="short")
        engine.start(engine.detect("anything"))

        self.assertFalse(engine.is_finished())
        self.assertEqual(engine.next_reply(), "hello")
        self.assertTrue(engine.is_finished())
        self.assertIsNone(engine.next_reply())
        self.assertEqual(engine.turn_cursor, 2)

    def test_cursor_advances_by_two(self):
        engine = ScenarioEngine()
        engine.start(ScenarioType.TRAVEL)
        engine.next_reply()
        engine.next_reply()
        self.assertEqual(engine.turn_cursor, 4)

    def test_start_overwrites_run_in_progress(self):
        engine = ScenarioEngine()
        engine.start(ScenarioType.TRAVEL)
        engine.next_reply()
        engine.start(ScenarioType.ENGLISH)

        self.assertEqual(engine.active_scenario, ScenarioType.ENGLISH)
        self.assertEqual(engine.turn_cursor, 0)
        self.assertEqual(engine.next_reply(), _ai_turns(ScenarioType.ENGLISH)[0])

    def test_no_scenario_means_finished(self):
        engine = ScenarioEngine()
        self.assertTrue(engine.is_finished())
        self.assertIsNone(engine.next_reply())

    def test_unknown_scenario_is_already_finished(self):
        engine = ScenarioEngine()
        engine.start("missing")
        self.assertTrue(engine.is_finished())
        self.assertIsNone(engine.next_reply())


class TestReset(unittest.TestCase):

    def test_reset_behaves_like_fresh_engine(self):
        engine = ScenarioEngine()
        engine.start(ScenarioType.FOLLOWUP)
        engine.next_reply()
        engine.reset()

        self.assertTrue(engine.is_finished())
        self.assertFalse(engine.has_active_scenario)
        self.assertEqual(engine.turn_cursor, 0)
        self.assertEqual(engine.snapshot(), ScenarioEngine().snapshot())

        engine.start(engine.detect("feedback"))
        self.assertEqual(engine.next_reply(), _ai_turns(ScenarioType.FOLLOWUP)[0])


class TestFormatsAndSnapshot(unittest.TestCase):

    def test_preferred_formats_follow_active_scenario(self):
        engine = ScenarioEngine()
        self.assertIsNone(engine.preferred_formats())

        engine.start(ScenarioType.LEAD_GEN)
        self.assertEqual(engine.preferred_formats(), frozenset({"lead_gen"}))

        engine.start(ScenarioType.TRAVEL)
        self.assertEqual(engine.preferred_formats(), frozenset({"action_card"}))

    def test_snapshot(self):
        engine = ScenarioEngine()
        engine.start(ScenarioType.STATIC_AD)
        engine.next_reply()
        self.assertEqual(
            engine.snapshot(),
            {"active_scenario": "static_ad", "turn_cursor": 2, "finished": False},
        )


class TestCatalog(unittest.TestCase):

    def test_catalog_is_read_only(self):
        with self.assertRaises(TypeError):
            SCENARIOS[ScenarioType.ENGLISH] = SCENARIOS[ScenarioType.TRAVEL]

    def test_every_scenario_alternates_starting_with_user(self):
        for scenario in SCENARIOS.values():
            roles = [t["role"] for t in scenario["turns"]]
            self.assertEqual(roles[::2], ["user"] * len(roles[::2]))
            self.assertEqual(roles[1::2], ["ai"] * len(roles[1::2]))

    def test_badly_ordered_turns_are_rejected(self):
        with self.assertRaises(ValueError):
            templates._validate_turns(
                ScenarioType.ENGLISH,
                ({"role": "ai", "text": "hi"}, {"role": "user", "text": "hello"}),
            )

    def test_programming_ja_has_no_keywords(self):
        self.assertEqual(templates.keywords_for(ScenarioType.PROGRAMMING_JA), [])

    def test_load_scenario(self):
        self.assertEqual(templates.load_scenario("travel")["id"], ScenarioType.TRAVEL)
        self.assertIsNone(templates.load_scenario("nope"))

    def test_summaries_cover_all_scenarios(self):
        ids = {s["id"] for s in templates.get_all_summaries()}
        self.assertEqual(ids, {s.value for s in ScenarioType})


class TestParseFallback(unittest.TestCase):

    def test_parse_fallback(self):
        self.assertEqual(parse_fallback(None), DEFAULT_FALLBACK)
        self.assertEqual(parse_fallback(""), DEFAULT_FALLBACK)
        self.assertIsNone(parse_fallback("none"))
        self.assertIsNone(parse_fallback("None"))
        self.assertEqual(parse_fallback("travel"), ScenarioType.TRAVEL)
        with self.assertRaises(ValueError):
            parse_fallback("bogus")


if __name__ == "__main__":
    unittest.main()
