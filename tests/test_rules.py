"""Tests for the rule pool, predicates and rule set builder."""

import json
from datetime import date

import pytest

from passgame import (
    Rule,
    RuleSet,
    build_rule_set,
    get_rule,
    load_assignments,
    rule_pool,
    rules_by_category,
    rules_by_ids,
)
from passgame.challenges import ChallengeSnapshot
from passgame.predicates import BLACK_SQUARE, WEIGHT_LIFTER, first_digits

SNAPSHOT = ChallengeSnapshot(
    today=date(2024, 1, 1),  # a Monday
    captcha_code="40213",
    qr_word="penguin",
    color_name="Teal",
    color_hex="#008080",
    constant_name="Pi (π)",
    constant_value="3.14159265358979323846",
    chess_fen="rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
    chess_best_move="e2e4",
    wordle_answer="CRANE",
)


def _check(rule_id, password, snapshot=SNAPSHOT):
    rule = get_rule(rule_id)
    return rule.predicate(password, snapshot)


# ── Pool ───────────────────────────────────────────────────────────────────


class TestPool:
    def test_ids_unique_and_ascending(self):
        ids = [r.id for r in rule_pool()]
        assert ids == sorted(ids)
        assert len(ids) == len(set(ids)) == 25

    def test_pool_is_cached(self):
        assert rule_pool() is rule_pool()

    def test_get_rule_returns_fresh_copy(self):
        a = get_rule(1)
        a.satisfied = True
        b = get_rule(1)
        assert a is not b
        assert b.satisfied is False

    def test_get_unknown_rule(self):
        assert get_rule(999) is None

    def test_rules_by_category(self):
        basic = rules_by_category("basic")
        assert [r.id for r in basic] == [1, 2, 3, 4, 5, 6]
        assert all(r.category == "basic" for r in basic)

    def test_rules_by_ids_skips_unknown(self):
        assert [r.id for r in rules_by_ids([4, 2, 999])] == [2, 4]

    def test_challenge_rules_flagged(self):
        flagged = {r.id: r.challenge for r in rule_pool() if r.challenge}
        assert flagged == {15: "captcha", 17: "qr", 18: "color", 19: "chess"}


# ── Rule / RuleSet ─────────────────────────────────────────────────────────


class TestRuleModel:
    def test_id_must_be_positive(self):
        with pytest.raises(ValueError, match="positive"):
            Rule(0, "zero", lambda pw, s: True)

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            RuleSet([get_rule(1), get_rule(1)])

    def test_fresh_clears_flags(self):
        rule = get_rule(2)
        rule.satisfied = rule.visible = rule.newly_satisfied = rule.newly_revealed = True
        copy = rule.fresh()
        assert not (copy.satisfied or copy.visible or copy.newly_satisfied or copy.newly_revealed)
        assert copy.id == 2

    def test_render_hint_fills_snapshot_values(self):
        assert get_rule(16).render_hint(SNAPSHOT) == "Include today's Wordle solution: CRANE"
        assert get_rule(7).render_hint(SNAPSHOT) == "Include today's day of the week: Monday"
        assert get_rule(19).render_hint(SNAPSHOT) == "Best move: e2e4"
        assert "Pi (π) (3.14159...)" in get_rule(13).render_hint(SNAPSHOT)

    def test_render_hint_without_snapshot(self):
        assert get_rule(1).render_hint() == "Add more characters to reach at least 8."

    def test_to_dict(self):
        d = get_rule(18).to_dict(SNAPSHOT)
        assert d["id"] == 18
        assert d["challenge"] == "color"
        assert d["hint"] == "Include the hex color code for Teal (#008080)"
        assert d["is_visible"] is False
        json.dumps(d)

    def test_ruleset_get(self):
        rs = RuleSet(rules_by_ids([1, 2]))
        assert rs.get(2).id == 2
        assert rs.get(3) is None
        assert len(rs) == 2


# ── Predicates ─────────────────────────────────────────────────────────────


class TestPredicates:
    @pytest.mark.parametrize("rule_id, password, expected", [
        (1, "abcdefgh", True),
        (1, "abcdefg", False),
        (2, "abcDEF", True),
        (2, "abcdef", False),
        (3, "abc\\", True),
        (3, "abc?", False),
        (4, "abc9", True),
        (5, "abcX", True),
        (5, "abcx", False),
        (6, "x47", True),
        (6, "x1", False),
        (8, "I love STARBUCKS", True),
        (9, "xyzA", True),
        (9, "xyz", False),
        (11, "a" * 16, True),
        (12, "ABc D", True),
        (12, "ABcd", False),
        (21, "xRaCeCaRx", True),
        (21, "abba", True),
        (21, "abcd", False),
        (22, "my PDF File", True),
        (24, "clean", True),
        (24, f"dirty{BLACK_SQUARE}", False),
        (25, "NOIMPOSTER!", True),
    ])
    def test_plain_rules(self, rule_id, password, expected):
        assert _check(rule_id, password) is expected

    def test_weight_lifters(self):
        assert _check(20, WEIGHT_LIFTER * 3) is True
        assert _check(20, WEIGHT_LIFTER * 2) is False

    def test_date_rules(self):
        assert _check(7, "happyMONDAY") is True
        assert _check(7, "tuesday") is False
        assert _check(10, "january!") is True

    @pytest.mark.parametrize("rule_id, password", [
        (13, "x314x"),
        (14, "UPDATE-2024"),
        (15, "aa40213bb"),
        (16, "crane"),
        (17, "PENGUIN"),
        (18, "#008080"),
        (18, "008080"),
        (19, "E2E4"),
        (23, "RAID-UNLOCKED"),
    ])
    def test_challenge_rules_satisfied(self, rule_id, password):
        assert _check(rule_id, password) is True

    @pytest.mark.parametrize("rule_id", [13, 15, 16, 17, 18, 19])
    def test_challenge_rules_fail_closed(self, rule_id):
        empty = ChallengeSnapshot(today=date(2024, 1, 1))
        assert _check(rule_id, "x314x 40213 crane penguin #008080 e2e4", empty) is False

    def test_first_digits(self):
        assert first_digits("3.14159") == "314"
        assert first_digits("0.5772") == "057"
        assert first_digits("") == ""


# ── Assignments ────────────────────────────────────────────────────────────


class TestAssignments:
    def test_defaults(self):
        assignments = load_assignments()
        assert assignments["basic"] == [1, 2, 3, 4, 5, 6]
        assert set(assignments) == {"basic", "intermediate", "hard", "expert", "fun"}

    def test_defaults_are_copies(self):
        load_assignments()["basic"].append(99)
        assert 99 not in load_assignments()["basic"]

    def test_from_file(self, tmp_path):
        path = tmp_path / "assignments.json"
        path.write_text(json.dumps({"custom": [9, 3, 1]}))
        assert load_assignments(path) == {"custom": [9, 3, 1]}

    def test_missing_file(self, tmp_path, caplog):
        assert load_assignments(tmp_path / "nope.json") == {}
        assert "Could not load assignments" in caplog.text

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"basic": [1, "2"]}'])
    def test_malformed_file(self, tmp_path, content):
        path = tmp_path / "bad.json"
        path.write_text(content)
        assert load_assignments(path) == {}


# ── build_rule_set ─────────────────────────────────────────────────────────


class TestBuildRuleSet:
    def test_known_difficulty(self):
        rs = build_rule_set("intermediate")
        assert rs.difficulty == "intermediate"
        assert [r.id for r in rs] == list(range(1, 13))

    def test_hard_skips_update_rule(self):
        ids = [r.id for r in build_rule_set("hard")]
        assert 14 not in ids
        assert ids == sorted(ids)

    def test_unknown_difficulty_falls_back_to_basic(self, caplog):
        rs = build_rule_set("nightmare")
        assert rs.difficulty == "basic"
        assert [r.id for r in rs] == [1, 2, 3, 4, 5, 6]
        assert "nightmare" in caplog.text

    def test_sorted_by_id_from_file(self, tmp_path):
        path = tmp_path / "assignments.json"
        path.write_text(json.dumps({"custom": [9, 3, 1, 404]}))
        rs = build_rule_set("custom", path)
        assert [r.id for r in rs] == [1, 3, 9]

    def test_broken_file_falls_back_to_basic(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        rs = build_rule_set("expert", path)
        assert [r.id for r in rs] == [1, 2, 3, 4, 5, 6]

    def test_each_call_is_independent(self):
        a = build_rule_set("basic")
        a.rules[0].visible = True
        b = build_rule_set("basic")
        assert b.rules[0].visible is False
