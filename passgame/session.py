"""Per-player game session.

A :class:`GameSession` carries the only state kept between validation
passes: the satisfied and visible maps from the previous pass, plus the
player's progress milestones.  Callers own the session object (Streamlit
session state, a server-side store, ...); nothing here is global.
"""

import dataclasses
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from passgame import engine
from passgame.engine import DEFAULT_POLICY, EnginePolicy, RuleChanges
from passgame.rules import Rule, RuleSet, build_rule_set

logger = logging.getLogger(__name__)


# ── Wire format ────────────────────────────────────────────────────────────


def parse_states(raw) -> dict[int, bool]:
    """Decode ``{"<rule id>": bool, ...}``.

    Accepts a JSON string or an already decoded mapping.  Malformed input
    and individual bad entries are dropped, never raised.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.debug("Discarding malformed rule state %r", raw)
            return {}
    if not isinstance(raw, dict):
        return {}

    states = {}
    for key, value in raw.items():
        try:
            rule_id = int(key)
        except (TypeError, ValueError):
            continue
        if isinstance(value, bool):
            states[rule_id] = value
    return states


def dump_states(states: dict[int, bool]) -> str:
    return json.dumps({str(k): bool(v) for k, v in sorted(states.items())})


# ── Result ─────────────────────────────────────────────────────────────────


@dataclass
class ValidationResult:
    password: str
    rules: list[Rule]
    sorted_rules: list[Rule]
    changes: RuleChanges
    satisfied_count: int
    satisfied: dict[int, bool]
    visible: dict[int, bool]
    milestone: int | None = None
    completed_now: bool = False

    @property
    def total(self) -> int:
        return len(self.rules)

    @property
    def progress_percentage(self) -> float:
        if not self.rules:
            return 0.0
        return self.satisfied_count / len(self.rules) * 100

    @property
    def all_satisfied(self) -> bool:
        return bool(self.rules) and self.satisfied_count == len(self.rules)

    @property
    def has_password(self) -> bool:
        return len(self.password) > 0

    def to_dict(self, snapshot=None) -> dict:
        return {
            "sorted_rules": [r.to_dict(snapshot) for r in self.sorted_rules],
            "changes": self.changes.to_dict(),
            "satisfied_count": self.satisfied_count,
            "total": self.total,
            "progress_percentage": round(self.progress_percentage, 1),
            "all_satisfied": self.all_satisfied,
            "has_password": self.has_password,
            "satisfied_states": {str(k): v for k, v in self.satisfied.items()},
            "visible_states": {str(k): v for k, v in self.visible.items()},
            "milestone": self.milestone,
            "completed_now": self.completed_now,
        }


# ── Session ────────────────────────────────────────────────────────────────


@dataclass
class GameSession:
    difficulty: str = "basic"
    username: str = ""
    assignments_path: str | Path | None = None
    satisfied: dict[int, bool] = field(default_factory=dict)
    visible: dict[int, bool] = field(default_factory=dict)
    max_rule: int = 0
    is_completed: bool = False
    started_at: float = field(default_factory=time.monotonic)
    _rule_set: RuleSet | None = field(default=None, init=False, repr=False)

    @property
    def rule_set(self) -> RuleSet:
        if self._rule_set is None:
            self._rule_set = build_rule_set(self.difficulty, self.assignments_path)
        return self._rule_set

    @property
    def elapsed(self) -> int:
        return int(time.monotonic() - self.started_at)

    def submit(self, password: str, snapshot=None,
               policy: EnginePolicy = DEFAULT_POLICY) -> ValidationResult:
        """Run one validation pass for *password* and remember its state."""
        rule_set = self.rule_set
        prior_satisfied = engine.positional_states(rule_set, self.satisfied)
        prior_visible = engine.positional_states(rule_set, self.visible)

        engine.validate_password(rule_set, password, self.satisfied, self.visible,
                                 snapshot, policy)
        changes = engine.analyze_changes(rule_set, prior_satisfied, prior_visible)
        sorted_rules = engine.sort_visible(rule_set)
        count = engine.satisfied_count(rule_set)
        self.satisfied, self.visible = engine.state_maps(rule_set)

        milestone = self._track_progress(rule_set)
        completed_now = False
        if rule_set.rules and count == len(rule_set) and not self.is_completed:
            self.is_completed = True
            completed_now = True
            logger.info("Game completed by %s on %s in %ds",
                        self.username or "anonymous", self.difficulty, self.elapsed)

        # Copies, so a later pass does not rewrite this result.
        copies = {r.id: dataclasses.replace(r) for r in rule_set}
        return ValidationResult(
            password=password,
            rules=list(copies.values()),
            sorted_rules=[copies[r.id] for r in sorted_rules],
            changes=changes,
            satisfied_count=count,
            satisfied=dict(self.satisfied),
            visible=dict(self.visible),
            milestone=milestone,
            completed_now=completed_now,
        )

    def _track_progress(self, rule_set: RuleSet) -> int | None:
        newly = [r.id for r in rule_set if r.newly_satisfied]
        if not newly:
            return None
        highest = max(newly)
        if highest <= self.max_rule:
            return None
        self.max_rule = highest
        logger.info("Rule %d reached by %s after %ds",
                    highest, self.username or "anonymous", self.elapsed)
        return highest

    def restore(self, satisfied_raw, visible_raw) -> None:
        """Load prior state sent back by a client (see :func:`dump_states`)."""
        self.satisfied = parse_states(satisfied_raw)
        self.visible = parse_states(visible_raw)

    def export(self) -> tuple[str, str]:
        return dump_states(self.satisfied), dump_states(self.visible)

    def change_difficulty(self, difficulty: str) -> None:
        self.difficulty = difficulty
        self.reset()

    def reset(self) -> None:
        self.satisfied = {}
        self.visible = {}
        self.max_rule = 0
        self.is_completed = False
        self.started_at = time.monotonic()
        self._rule_set = None
