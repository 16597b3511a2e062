"""Game configuration, difficulty metadata and logging setup."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from passgame.challenges import CHALLENGE_NAMES, DEFAULT_REFRESH_INTERVALS
from passgame.engine import EnginePolicy

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


# ── Difficulties ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DifficultyConfig:
    name: str
    icon: str = ""
    color: str = ""
    description: str = ""


DEFAULT_DIFFICULTIES = {
    "basic": DifficultyConfig("Basic", "\U0001f7e2", "#4CAF50", "Standard rules"),
    "intermediate": DifficultyConfig("Intermediate", "\U0001f7e1", "#FF9800", "More challenging"),
    "hard": DifficultyConfig("Hard", "\U0001f534", "#F44336", "Expert level"),
    "expert": DifficultyConfig("Expert", "\U0001f7e3", "#9C27B0", "Master level"),
    "fun": DifficultyConfig("Fun", "\U0001f389", "#E91E63", "Quirky rules"),
}


def load_difficulties(path: str | Path | None = None) -> dict[str, DifficultyConfig]:
    """Load difficulty metadata from JSON, falling back to the defaults."""
    if path is None:
        return dict(DEFAULT_DIFFICULTIES)
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        difficulties = {
            key: DifficultyConfig(
                name=str(value.get("name", key)),
                icon=str(value.get("icon", "")),
                color=str(value.get("color", "")),
                description=str(value.get("description", "")),
            )
            for key, value in data.items()
        }
    except (OSError, ValueError, AttributeError) as exc:
        logger.warning("Could not load difficulties from %s: %s", path, exc)
        return dict(DEFAULT_DIFFICULTIES)
    if not difficulties:
        logger.warning("No difficulties in %s, using defaults", path)
        return dict(DEFAULT_DIFFICULTIES)
    return difficulties


def validate_difficulty(key: str, difficulties: dict | None = None) -> bool:
    """Case-insensitive check that *key* names a configured difficulty."""
    if difficulties is None:
        difficulties = DEFAULT_DIFFICULTIES
    return any(key.lower() == k.lower() for k in difficulties)


# ── Game config ────────────────────────────────────────────────────────────


@dataclass
class GameConfig:
    show_hints: bool = True
    first_rule_always_visible: bool = True
    evaluate_hidden_rules: bool = False
    default_difficulty: str = "basic"
    assignments_path: Path | None = None
    difficulties_path: Path | None = None
    online: bool = True
    http_timeout: float = 10.0
    refresh_intervals: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_REFRESH_INTERVALS)
    )
    log_level: str = "INFO"

    def engine_policy(self) -> EnginePolicy:
        return EnginePolicy(
            first_rule_always_visible=self.first_rule_always_visible,
            evaluate_hidden_rules=self.evaluate_hidden_rules,
        )


_BOOL_KEYS = ("show_hints", "first_rule_always_visible", "evaluate_hidden_rules", "online")
_STR_KEYS = ("default_difficulty", "log_level")
_PATH_KEYS = ("assignments_path", "difficulties_path")


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def _apply(cfg: GameConfig, data: dict) -> None:
    for key in _BOOL_KEYS:
        if isinstance(data.get(key), bool):
            setattr(cfg, key, data[key])
    for key in _STR_KEYS:
        if isinstance(data.get(key), str) and data[key]:
            setattr(cfg, key, data[key])
    for key in _PATH_KEYS:
        if isinstance(data.get(key), str) and data[key]:
            setattr(cfg, key, Path(data[key]))
    timeout = data.get("http_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
        cfg.http_timeout = float(timeout)
    intervals = data.get("refresh_intervals")
    if isinstance(intervals, dict):
        for name, seconds in intervals.items():
            if name in CHALLENGE_NAMES and isinstance(seconds, (int, float)) and seconds > 0:
                cfg.refresh_intervals[name] = float(seconds)


def load_config(path: str | Path | None = None) -> GameConfig:
    """Build a :class:`GameConfig` from an optional JSON file and the environment.

    *path* defaults to ``$PASSGAME_CONFIG``.  Unknown or ill-typed keys and
    unreadable files are ignored.  ``PASSGAME_*`` variables override the
    file.
    """
    config = GameConfig()
    path = path or os.environ.get("PASSGAME_CONFIG")
    if path:
        try:
            text = Path(path).read_text(encoding="utf-8")
            if text.strip():
                data = json.loads(text)
                if isinstance(data, dict):
                    _apply(config, data)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring config file %s: %s", path, exc)

    env = os.environ
    if "PASSGAME_SHOW_HINTS" in env:
        config.show_hints = _truthy(env["PASSGAME_SHOW_HINTS"])
    if "PASSGAME_ONLINE" in env:
        config.online = _truthy(env["PASSGAME_ONLINE"])
    if "PASSGAME_FIRST_RULE_ALWAYS_VISIBLE" in env:
        config.first_rule_always_visible = _truthy(env["PASSGAME_FIRST_RULE_ALWAYS_VISIBLE"])
    if env.get("PASSGAME_ASSIGNMENTS"):
        config.assignments_path = Path(env["PASSGAME_ASSIGNMENTS"])
    if env.get("PASSGAME_DIFFICULTIES"):
        config.difficulties_path = Path(env["PASSGAME_DIFFICULTIES"])
    if env.get("PASSGAME_LOG_LEVEL"):
        config.log_level = env["PASSGAME_LOG_LEVEL"]
    return config


def configure_logging(level: str | int = "INFO") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
