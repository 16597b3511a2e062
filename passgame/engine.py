"""Validation engine, display sorter and change analyzer.

One validation pass walks the rule set in order and, for each rule:

1. decides visibility.  The first rule is always shown; a rule that was
   shown before stays shown; any other rule is revealed only when the
   password is non-empty, every earlier rule is visible and the rule just
   before it is satisfied *in this same pass*.
2. evaluates the predicate (visible rules only, unless the policy says
   otherwise).  A predicate that raises counts as unsatisfied.
3. derives the ``newly_*`` flags from the prior state.

Prior state comes in as mappings keyed by rule id.  Anything missing or
not a real ``bool`` counts as ``False``, so a corrupted client snapshot
only resets progress flags; it never breaks a pass.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from passgame.challenges import ChallengeSnapshot
from passgame.rules import Rule, RuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnginePolicy:
    """Knobs for behaviour that differs between deployments.

    first_rule_always_visible -- show the first rule before anything is typed
    evaluate_hidden_rules     -- run predicates of rules that are not visible
    """

    first_rule_always_visible: bool = True
    evaluate_hidden_rules: bool = False


DEFAULT_POLICY = EnginePolicy()


# ── Validation ─────────────────────────────────────────────────────────────


def _prior(mapping: Mapping | None, rule_id: int) -> bool:
    if not mapping:
        return False
    try:
        return mapping.get(rule_id) is True
    except (AttributeError, TypeError):
        return False


def _evaluate(rule: Rule, password: str, snapshot) -> bool:
    try:
        return bool(rule.predicate(password, snapshot))
    except Exception:
        logger.exception("Rule %d predicate failed; treating as unsatisfied", rule.id)
        return False


def validate_password(
    rule_set: RuleSet,
    password: str,
    prior_satisfied: Mapping[int, bool] | None = None,
    prior_visible: Mapping[int, bool] | None = None,
    snapshot=None,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> RuleSet:
    """Recompute every rule's flags for *password* in place and return *rule_set*.

    Without a *snapshot*, date rules use today's date and challenge rules
    fail closed.
    """
    if snapshot is None:
        snapshot = ChallengeSnapshot()
    rules = rule_set.rules
    all_visible_so_far = True

    for i, rule in enumerate(rules):
        old_satisfied = _prior(prior_satisfied, rule.id)
        old_visible = _prior(prior_visible, rule.id)

        if i == 0:
            visible = policy.first_rule_always_visible or old_visible or bool(password)
        elif old_visible:
            visible = True
        else:
            visible = bool(password) and all_visible_so_far and rules[i - 1].satisfied

        if visible or policy.evaluate_hidden_rules:
            satisfied = _evaluate(rule, password, snapshot)
        else:
            satisfied = False

        rule.visible = visible
        rule.satisfied = satisfied
        rule.newly_satisfied = not old_satisfied and satisfied
        rule.newly_revealed = not old_visible and visible

        all_visible_so_far = all_visible_so_far and visible

    return rule_set


# ── Sorting ────────────────────────────────────────────────────────────────


def sort_visible(rule_set: RuleSet | Sequence[Rule]) -> list[Rule]:
    """Visible rules for display: unsatisfied first, then satisfied, each by id."""
    return sorted((r for r in rule_set if r.visible), key=lambda r: (r.satisfied, r.id))


# ── Change analysis ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RuleChanges:
    newly_satisfied: tuple[int, ...] = ()
    newly_unsatisfied: tuple[int, ...] = ()
    newly_visible: tuple[int, ...] = ()
    newly_hidden: tuple[int, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(
            self.newly_satisfied or self.newly_unsatisfied
            or self.newly_visible or self.newly_hidden
        )

    def to_dict(self) -> dict:
        return {
            "has_changes": self.has_changes,
            "newly_satisfied": list(self.newly_satisfied),
            "newly_unsatisfied": list(self.newly_unsatisfied),
            "newly_visible": list(self.newly_visible),
            "newly_hidden": list(self.newly_hidden),
        }


def analyze_changes(
    rules: RuleSet | Sequence[Rule],
    prior_satisfied: Sequence[bool] | None = None,
    prior_visible: Sequence[bool] | None = None,
) -> RuleChanges:
    """Diff the current rule flags against positional prior state.

    *prior_satisfied* and *prior_visible* are aligned by index with
    *rules*.  Rules past the end of *prior_satisfied* are not classified
    for satisfaction; rules past the end of *prior_visible* that are
    visible count as newly visible.
    """
    prior_satisfied = prior_satisfied or ()
    prior_visible = prior_visible or ()
    sat_up, sat_down, vis_up, vis_down = [], [], [], []

    for i, rule in enumerate(rules):
        if i < len(prior_satisfied):
            was = bool(prior_satisfied[i])
            if not was and rule.satisfied:
                sat_up.append(rule.id)
            elif was and not rule.satisfied:
                sat_down.append(rule.id)

        if i < len(prior_visible):
            was = bool(prior_visible[i])
            if not was and rule.visible:
                vis_up.append(rule.id)
            elif was and not rule.visible:
                vis_down.append(rule.id)
        elif rule.visible:
            vis_up.append(rule.id)

    return RuleChanges(tuple(sat_up), tuple(sat_down), tuple(vis_up), tuple(vis_down))


# ── State helpers ──────────────────────────────────────────────────────────


def satisfied_states(rule_set: RuleSet) -> list[bool]:
    return [r.satisfied for r in rule_set]


def visible_states(rule_set: RuleSet) -> list[bool]:
    return [r.visible for r in rule_set]


def satisfied_count(rule_set: RuleSet) -> int:
    return sum(satisfied_states(rule_set))


def state_maps(rule_set: RuleSet) -> tuple[dict[int, bool], dict[int, bool]]:
    """Return ``(satisfied, visible)`` keyed by rule id."""
    ids = [r.id for r in rule_set]
    return (
        dict(zip(ids, satisfied_states(rule_set))),
        dict(zip(ids, visible_states(rule_set))),
    )


def positional_states(rule_set: RuleSet, mapping: Mapping[int, bool] | None) -> list[bool]:
    """Line an id-keyed state map up with *rule_set*'s order.

    An empty or missing map gives an empty list ("no prior state"), which
    :func:`analyze_changes` treats differently from all-False.
    """
    if not mapping:
        return []
    return [_prior(mapping, r.id) for r in rule_set]
