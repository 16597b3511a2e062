"""Rule model, the global rule pool, and per-difficulty rule sets."""

import dataclasses
import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from passgame import predicates as p

logger = logging.getLogger(__name__)

FALLBACK_DIFFICULTY = "basic"

DEFAULT_ASSIGNMENTS: dict[str, list[int]] = {
    "basic": [1, 2, 3, 4, 5, 6],
    "intermediate": list(range(1, 13)),
    "hard": list(range(1, 14)) + [15, 16, 17, 18],
    "expert": list(range(1, 26)),
    "fun": [1, 5, 6, 8, 9, 16, 20, 21],
}


@dataclass
class Rule:
    """One password constraint plus its per-session display state.

    ``predicate`` is called as ``predicate(password, snapshot)``.  The flag
    fields are rewritten on every validation pass; the rest never changes.
    """

    id: int
    description: str
    predicate: Callable = field(repr=False, compare=False)
    hint: str = ""
    category: str = "basic"
    challenge: str | None = None

    satisfied: bool = False
    visible: bool = False
    newly_satisfied: bool = False
    newly_revealed: bool = False

    def __post_init__(self) -> None:
        if self.id <= 0:
            raise ValueError(f"Rule id must be positive, got {self.id}")

    def fresh(self) -> "Rule":
        """Copy with every flag cleared."""
        return dataclasses.replace(
            self, satisfied=False, visible=False, newly_satisfied=False, newly_revealed=False,
        )

    def render_hint(self, snapshot=None) -> str:
        if snapshot is None or "{" not in self.hint:
            return self.hint
        return self.hint.format_map(snapshot.hint_fields())

    def to_dict(self, snapshot=None) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "hint": self.render_hint(snapshot),
            "category": self.category,
            "challenge": self.challenge,
            "is_satisfied": self.satisfied,
            "is_visible": self.visible,
            "newly_satisfied": self.newly_satisfied,
            "newly_revealed": self.newly_revealed,
        }


@dataclass
class RuleSet:
    """Ordered rules for one difficulty.  Order is the gating chain."""

    rules: list[Rule] = field(default_factory=list)
    difficulty: str = FALLBACK_DIFFICULTY

    def __post_init__(self) -> None:
        ids = [r.id for r in self.rules]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate rule ids in rule set: {ids}")

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def get(self, rule_id: int) -> Rule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


# ── Pool ───────────────────────────────────────────────────────────────────


@lru_cache(maxsize=None)
def rule_pool() -> tuple[Rule, ...]:
    """Every rule the game knows about, ascending by id.

    Built once per process.  The entries are templates: callers get copies
    through :func:`get_rule`, :func:`rules_by_category` and
    :func:`rules_by_ids`.
    """
    return (
        Rule(1, "Must be at least 8 characters long", p.min_length_8,
             "Add more characters to reach at least 8."),
        Rule(2, "Must include both uppercase and lowercase letters", p.has_mixed_case,
             "Include both UPPERCASE and lowercase letters."),
        Rule(3, "Must include a special character (!@#$%^&*)", p.has_special,
             "Add one of these: !@#$%^&*\\"),
        Rule(4, "Must include a number", p.has_digit,
             "Add at least one digit (0-9)."),
        Rule(5, "Must include Roman numerals (I, V, X, L, C, D, M)", p.has_roman_numeral,
             "Include Roman numerals: I, V, X, L, C, D, M"),
        Rule(6, "Must include a prime number", p.has_prime,
             "Include a prime number: 2, 3, 5, 7, 11, 13, etc."),
        Rule(7, "Must contain the current day of the week", p.has_weekday,
             "Include today's day of the week: {weekday}", "intermediate"),
        Rule(8, "Must contain one of our following sponsors: (Pepsi, Starbucks, Shell)",
             p.has_sponsor, "Include one of our sponsors: Pepsi, Starbucks, Shell", "intermediate"),
        Rule(9, "Must contain at least one vowel", p.has_vowel,
             "Add at least one vowel: a, e, i, o, u", "intermediate"),
        Rule(10, "Must include the current month name", p.has_month,
             "Include the current month: {month}", "intermediate"),
        Rule(11, "Must be at least 16 characters long", p.min_length_16,
             "Add more characters to reach at least 16.", "intermediate"),
        Rule(12, "Must include at least 3 uppercase letters", p.has_three_uppercase,
             "Add at least 3 UPPERCASE letters.", "intermediate"),
        Rule(13, "Must include the first 3 numbers of the following mathematical constant",
             p.has_math_constant, "Include the first 3 digits of {constant}", "hard"),
        Rule(14, "A new password rule just got updated! Please click update on the alertbox!",
             p.has_update_string, "After the update, include '{update_string}' in your password.",
             "expert"),
        Rule(15, "Must include a captcha (5-digit code)", p.has_captcha,
             "Enter the 5-digit code shown in the captcha image.", "hard", "captcha"),
        Rule(16, "Must include today's Wordle answer", p.has_wordle_answer,
             "Include today's Wordle solution: {wordle}", "hard"),
        Rule(17, "Must include the word in this QR code", p.has_qr_word,
             "Scan the QR code to get the required word.", "hard", "qr"),
        Rule(18, "Must include a Hex code of the following color", p.has_hex_color,
             "Include the hex color code for {color}", "hard", "color"),
        Rule(19, "Must include the best chess move (image)", p.has_chess_move,
             "{chess}", "expert", "chess"),
        Rule(20, f"Your password is not strong enough {p.WEIGHT_LIFTER}", p.has_three_weight_lifters,
             f"Add at least 3 {p.WEIGHT_LIFTER} emojis to your password.", "expert"),
        Rule(21, "Must contain a palindrome (3+ characters)", p.has_palindrome,
             "Include a palindrome like 'aba', 'racecar', or '121'.", "expert"),
        Rule(22, 'Must include "pdf file"', p.has_pdf_file,
             "Include the phrase 'pdf file' in your password.", "expert"),
        Rule(23, "Oh no! Your password textbox is locked! Watch this ad to unlock your textbox!",
             p.has_raid_unlock, "After the ad, include '{raid_unlock_string}' in your password.",
             "expert"),
        Rule(24, "!!Warning!! a ransomware attack is trying to get your password, "
                 "delete the blackbox to defend it!",
             p.has_no_black_squares, "Delete the black squares to defend your password!", "expert"),
        Rule(25, "It seems like someone here leaked your information, "
                 "find the insider threat in your password!",
             p.has_no_imposter,
             "Delete the imposter letters from your password! Add 'NOIMPOSTER' when done.",
             "expert"),
    )


def get_rule(rule_id: int) -> Rule | None:
    for rule in rule_pool():
        if rule.id == rule_id:
            return rule.fresh()
    return None


def rules_by_category(category: str) -> list[Rule]:
    return [r.fresh() for r in rule_pool() if r.category == category]


def rules_by_ids(ids: Iterable[int]) -> list[Rule]:
    """Fresh copies of the pool rules listed in *ids*; unknown ids are skipped."""
    wanted = set(ids)
    return [r.fresh() for r in rule_pool() if r.id in wanted]


# ── Assignments ────────────────────────────────────────────────────────────


def _valid_assignments(data) -> bool:
    if not isinstance(data, dict):
        return False
    for key, ids in data.items():
        if not isinstance(key, str) or not isinstance(ids, list):
            return False
        if not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
            return False
    return True


@lru_cache(maxsize=16)
def _read_assignments(path: Path) -> dict[str, tuple[int, ...]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not load assignments from %s: %s", path, exc)
        return {}
    if not _valid_assignments(data):
        logger.warning("Ignoring malformed assignments file %s", path)
        return {}
    return {key: tuple(ids) for key, ids in data.items()}


def load_assignments(path: str | Path | None = None) -> dict[str, list[int]]:
    """Return the difficulty -> rule id mapping.

    With no *path* the built-in defaults are used.  An unreadable or
    malformed file yields an empty mapping, so every difficulty falls back
    to the basic rules.
    """
    if path is None:
        return {key: list(ids) for key, ids in DEFAULT_ASSIGNMENTS.items()}
    return {key: list(ids) for key, ids in _read_assignments(Path(path)).items()}


def build_rule_set(difficulty: str, assignments_path: str | Path | None = None) -> RuleSet:
    """Build a fresh :class:`RuleSet` for *difficulty*.

    Unknown difficulties get the basic category of the pool instead of an
    error.
    """
    assignments = load_assignments(assignments_path)
    ids = assignments.get(difficulty)
    if ids is None:
        logger.warning("Difficulty %r not found in assignments, using %s",
                       difficulty, FALLBACK_DIFFICULTY)
        return RuleSet(rules_by_category(FALLBACK_DIFFICULTY), FALLBACK_DIFFICULTY)

    rules = sorted(rules_by_ids(ids), key=lambda r: r.id)
    return RuleSet(rules, difficulty)
