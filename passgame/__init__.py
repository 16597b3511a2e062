"""passgame -- the password game rule engine.

A player types a password and gets live feedback on an ordered, growing
list of rules.  Rule N+1 stays hidden until rule N is satisfied, and a rule
that has been shown is never hidden again.

Core entry points:

    build_rule_set(difficulty)        ordered rules for a difficulty
    validate_password(rule_set, ...)  one validation pass, in place
    sort_visible(rule_set)            display order
    analyze_changes(rules, ...)       what changed since the last pass
    GameSession                       all of the above with state threading
"""

from passgame.challenges import ChallengeBoard, ChallengeRefresher, ChallengeSnapshot
from passgame.engine import (
    DEFAULT_POLICY,
    EnginePolicy,
    RuleChanges,
    analyze_changes,
    positional_states,
    satisfied_count,
    satisfied_states,
    sort_visible,
    state_maps,
    validate_password,
    visible_states,
)
from passgame.rules import (
    Rule,
    RuleSet,
    build_rule_set,
    get_rule,
    load_assignments,
    rule_pool,
    rules_by_category,
    rules_by_ids,
)
from passgame.session import GameSession, ValidationResult, dump_states, parse_states

__all__ = [
    "ChallengeBoard",
    "ChallengeRefresher",
    "ChallengeSnapshot",
    "DEFAULT_POLICY",
    "EnginePolicy",
    "GameSession",
    "Rule",
    "RuleChanges",
    "RuleSet",
    "ValidationResult",
    "analyze_changes",
    "build_rule_set",
    "dump_states",
    "get_rule",
    "load_assignments",
    "parse_states",
    "positional_states",
    "rule_pool",
    "rules_by_category",
    "rules_by_ids",
    "satisfied_count",
    "satisfied_states",
    "sort_visible",
    "state_maps",
    "validate_password",
    "visible_states",
]
