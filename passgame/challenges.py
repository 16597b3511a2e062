"""Shared challenge state consulted by the password rules.

The captcha code, QR word, colour, maths constant, chess best move and
Wordle answer are shared by every session in the process.  They live in an
immutable :class:`ChallengeSnapshot` held by a :class:`ChallengeBoard`;
validation passes read the current snapshot under a shared lock and
refreshes swap in a new one under an exclusive lock.  All network access
happens in refreshes, never inside a validation pass.
"""

import dataclasses
import logging
import random
import secrets
import string
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date

import requests

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}


class ChallengeFetchError(Exception):
    """A challenge value could not be fetched from its upstream service."""


# ── Snapshot ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChallengeSnapshot:
    """Read-only view of the current challenge values.

    Empty strings mean "not available yet"; rules that depend on a missing
    value are unsatisfied.
    """

    today: date = field(default_factory=date.today)
    captcha_code: str = ""
    qr_word: str = ""
    color_name: str = ""
    color_hex: str = ""
    constant_name: str = ""
    constant_value: str = ""
    chess_fen: str = ""
    chess_best_move: str = ""
    wordle_answer: str = ""
    update_string: str = "UPDATE-2024"
    raid_unlock_string: str = "RAID-UNLOCKED"

    def hint_fields(self) -> dict:
        """Values substituted into rule hints."""
        if self.constant_name and self.constant_value:
            value = self.constant_value
            if len(value) > 7:
                value = value[:7] + "..."
            constant = f"{self.constant_name} ({value})"
        else:
            constant = "π (3.14159...)"

        if self.color_name and self.color_hex:
            color = f"{self.color_name} ({self.color_hex})"
        else:
            color = "Red (#FF0000)"

        if self.chess_best_move:
            chess = f"Best move: {self.chess_best_move}"
        else:
            chess = "Analyzing chess position..."

        return {
            "weekday": self.today.strftime("%A"),
            "month": self.today.strftime("%B"),
            "constant": constant,
            "color": color,
            "chess": chess,
            "wordle": self.wordle_answer or "SLATE",
            "update_string": self.update_string,
            "raid_unlock_string": self.raid_unlock_string,
        }


# ── Reader/writer lock ─────────────────────────────────────────────────────


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Readers only contend on a short internal mutex.  A waiting writer stops
    new readers from entering so periodic refreshes cannot be starved.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


# ── Built-in tables ────────────────────────────────────────────────────────

MATH_CONSTANTS = [
    ("Pi (π)", "3.14159265358979323846"),
    ("Euler's Number (e)", "2.71828182845904523536"),
    ("Golden Ratio (φ)", "1.61803398874989484820"),
    ("Square Root of 2", "1.41421356237309504880"),
    ("Square Root of 3", "1.73205080756887729352"),
    ("Euler-Mascheroni Constant (γ)", "0.57721566490153286060"),
    ("Feigenbaum Constant (δ)", "4.66920160910299067185"),
    ("Apéry's Constant (ζ(3))", "1.20205690315959428539"),
    ("Conway's Constant (λ)", "1.30357726903429639125"),
    ("Khinchin's Constant (K)", "2.68545200106530644530"),
]

COLOR_CODES = [
    ("Red", "#FF0000"), ("Green", "#00FF00"), ("Blue", "#0000FF"),
    ("Yellow", "#FFFF00"), ("Cyan", "#00FFFF"), ("Magenta", "#FF00FF"),
    ("Black", "#000000"), ("White", "#FFFFFF"), ("Orange", "#FFA500"),
    ("Purple", "#800080"), ("Pink", "#FFC0CB"), ("Brown", "#A52A2A"),
    ("Gray", "#808080"), ("Turquoise", "#40E0D0"), ("Gold", "#FFD700"),
    ("Silver", "#C0C0C0"), ("Navy", "#000080"), ("Teal", "#008080"),
    ("Olive", "#808000"), ("Maroon", "#800000"),
]

# (FEN, move used when the engine API is unreachable)
CHESS_PUZZLES = [
    ("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1", "e2e4"),
    ("r1bqkb1r/pppp1ppp/2n2n2/1B2p3/4P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4", "e1g1"),
    ("rnbqkb1r/ppp2ppp/4pn2/3p4/2PP4/2N2N2/PP2PPPP/R1BQKB1R b KQkq - 3 4", "f8e7"),
    ("r1bqk2r/pppp1ppp/2n2n2/2b1p3/2B1P3/3P1N2/PPP2PPP/RNBQK2R w KQkq - 4 5", "e1g1"),
    ("rnbqkbnr/ppp1pppp/8/3p4/4P3/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 2", "e4d5"),
]

FALLBACK_WORDS = [
    "password", "security", "encryption", "authentication", "verification",
    "protection", "firewall", "cybersecurity", "privacy", "confidential",
    "secret", "hidden", "secure", "private", "locked", "key", "code",
    "token", "access", "login", "session", "certificate", "signature",
    "computer", "keyboard", "mouse", "monitor", "server", "database",
    "network", "internet", "software", "hardware", "system", "program",
    "tiger", "lion", "elephant", "dolphin", "eagle", "penguin", "turtle",
    "mountain", "ocean", "beach", "forest", "jungle", "desert", "island",
    "apple", "banana", "orange", "pizza", "coffee", "bread", "cheese",
    "happy", "amazing", "awesome", "fantastic", "brilliant", "beautiful",
    "house", "book", "phone", "music", "movie", "game", "sport",
    "create", "build", "design", "develop", "explore", "discover", "learn",
]

WORDLE_FALLBACK = [
    "SLATE", "ROAST", "PRIDE", "STEAM", "HORSE", "DANCE", "LIGHT", "CLOUD", "STONE", "HEART",
    "PLANT", "SWEET", "WORLD", "SMILE", "PEACE", "DREAM", "FLAME", "BRAVE", "SHINE", "GRACE",
    "MOUNT", "BEACH", "FRESH", "CRISP", "HAPPY", "MAGIC", "POWER", "CHARM", "QUIET", "BLOOM",
    "SPARK", "GLEAM", "TREND", "FLASH", "GLORY", "HONEY", "JUICY", "KNEEL", "LUNAR", "MERRY",
    "NOBLE", "OCEAN", "PLUSH", "QUEST", "ROYAL", "SUNNY", "TIGER", "URBAN", "VIVID", "WINDY",
]

WORDLE_EPOCH = date(2021, 6, 19)

CAPTCHA_LENGTH = 5


# ── Upstream fetchers ──────────────────────────────────────────────────────


def fetch_wordle_answer(day: date, timeout: float = 10.0) -> str:
    """Return the Wordle solution for *day* from the NYT endpoint (upper case)."""
    try:
        resp = requests.get(
            f"https://www.nytimes.com/svc/wordle/v2/{day.isoformat()}.json",
            headers={**_HEADERS, "Referer": "https://www.nytimes.com/games/wordle/"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise ChallengeFetchError(f"Wordle: {exc}") from exc

    solution = data.get("solution") if isinstance(data, dict) else None
    if not solution or not isinstance(solution, str):
        raise ChallengeFetchError("Wordle: no solution in response")
    return solution.upper()


def fallback_wordle_answer(day: date) -> str:
    """Deterministic stand-in for the Wordle answer when the API is down."""
    number = (day - WORDLE_EPOCH).days + 1
    return WORDLE_FALLBACK[number % len(WORDLE_FALLBACK)]


def _parse_word_list(data):
    if isinstance(data, list) and data:
        return str(data[0])
    return ""


RANDOM_WORD_APIS = [
    ("random-word-api.herokuapp.com", "https://random-word-api.herokuapp.com/word", _parse_word_list),
    ("random-word-api.vercel.app", "https://random-word-api.vercel.app/api?words=1", _parse_word_list),
]


def fetch_random_word(timeout: float = 10.0, retries: int = 2, delay: float = 2.0) -> str:
    """Fetch one random word, trying each API in turn.

    Each API gets *retries* attempts with exponential backoff starting at
    *delay* seconds.  Raises :class:`ChallengeFetchError` when all fail.
    """
    errors: list[str] = []
    for name, url, parse in RANDOM_WORD_APIS:
        wait = delay
        for attempt in range(retries):
            try:
                resp = requests.get(url, headers=_HEADERS, timeout=timeout)
                resp.raise_for_status()
                word = parse(resp.json())
                if word:
                    return word.lower()
                errors.append(f"{name}: empty word list")
                break
            except (requests.RequestException, ValueError) as exc:
                errors.append(f"{name}: {exc}")
                logger.info("Random word API %s failed (attempt %d): %s", name, attempt + 1, exc)
                if attempt + 1 < retries:
                    time.sleep(wait)
                    wait *= 2
    raise ChallengeFetchError("all random word APIs failed: " + "; ".join(errors))


def fetch_best_move(fen: str, timeout: float = 10.0) -> str:
    """Ask the Stockfish online API for the best move in *fen* (UCI notation)."""
    try:
        resp = requests.get(
            "https://stockfish.online/api/s/v2.php",
            params={"fen": fen, "depth": 15},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise ChallengeFetchError(f"Stockfish: {exc}") from exc

    # "bestmove b7b6 ponder a1e1"
    if not isinstance(data, dict):
        raise ChallengeFetchError(f"Stockfish: unexpected response {data!r}")
    parts = str(data.get("bestmove") or "").split()
    if len(parts) < 2:
        raise ChallengeFetchError(f"Stockfish: unexpected response {data!r}")
    return parts[1]


# ── Board ──────────────────────────────────────────────────────────────────


class ChallengeBoard:
    """Process-wide holder of the current :class:`ChallengeSnapshot`.

    ``snapshot()`` is cheap and safe to call from any number of threads.
    The ``refresh_*`` methods compute their new value (including any
    network I/O) before taking the write lock, then swap the snapshot.
    """

    def __init__(self, *, clock=date.today, online: bool = True, timeout: float = 10.0,
                 rng: random.Random | None = None) -> None:
        self._clock = clock
        self._online = online
        self._timeout = timeout
        self._rng = rng or random.Random()
        self._lock = ReadWriteLock()
        self._snapshot = ChallengeSnapshot(today=clock())

    def snapshot(self) -> ChallengeSnapshot:
        with self._lock.read():
            current = self._snapshot
        today = self._clock()
        if current.today != today:
            current = dataclasses.replace(current, today=today)
        return current

    def _swap(self, **changes) -> None:
        with self._lock.write():
            self._snapshot = dataclasses.replace(self._snapshot, **changes)

    def refresh_captcha(self) -> str:
        code = "".join(secrets.choice(string.digits) for _ in range(CAPTCHA_LENGTH))
        self._swap(captcha_code=code)
        logger.debug("Captcha refreshed")
        return code

    def refresh_qr_word(self) -> str:
        word = ""
        if self._online:
            try:
                word = fetch_random_word(timeout=self._timeout)
            except ChallengeFetchError as exc:
                logger.warning("Using fallback QR word: %s", exc)
        if not word:
            word = self._rng.choice(FALLBACK_WORDS)
        self._swap(qr_word=word)
        logger.info("QR word refreshed")
        return word

    def refresh_color(self) -> tuple[str, str]:
        name, hex_code = self._rng.choice(COLOR_CODES)
        self._swap(color_name=name, color_hex=hex_code)
        logger.info("Color refreshed: %s", name)
        return name, hex_code

    def refresh_constant(self) -> tuple[str, str]:
        name, value = self._rng.choice(MATH_CONSTANTS)
        self._swap(constant_name=name, constant_value=value)
        logger.info("Math constant refreshed: %s", name)
        return name, value

    def refresh_chess(self) -> tuple[str, str]:
        fen, move = self._rng.choice(CHESS_PUZZLES)
        if self._online:
            try:
                move = fetch_best_move(fen, timeout=self._timeout)
            except ChallengeFetchError as exc:
                logger.warning("Using stored chess move: %s", exc)
        self._swap(chess_fen=fen, chess_best_move=move)
        logger.info("Chess position refreshed")
        return fen, move

    def refresh_wordle(self) -> str:
        today = self._clock()
        answer = ""
        if self._online:
            try:
                answer = fetch_wordle_answer(today, timeout=self._timeout)
            except ChallengeFetchError as exc:
                logger.warning("Using fallback Wordle answer: %s", exc)
        if not answer:
            answer = fallback_wordle_answer(today)
        self._swap(wordle_answer=answer)
        logger.info("Wordle answer refreshed for %s", today.isoformat())
        return answer

    def refresh(self, name: str):
        """Refresh one challenge by name (``captcha``, ``qr_word``, ...)."""
        try:
            method = getattr(self, f"refresh_{name}")
        except AttributeError:
            raise ValueError(f"Unknown challenge: {name!r}") from None
        return method()

    def refresh_all(self) -> ChallengeSnapshot:
        for name in CHALLENGE_NAMES:
            self.refresh(name)
        return self.snapshot()


CHALLENGE_NAMES = ("captcha", "qr_word", "color", "constant", "chess", "wordle")

DEFAULT_REFRESH_INTERVALS = {
    "qr_word": 10 * 60,
    "color": 6 * 60 * 60,
    "constant": 6 * 60 * 60,
    "chess": 6 * 60 * 60,
    "wordle": 60 * 60,
}


# ── Background refresh ─────────────────────────────────────────────────────


class ChallengeRefresher:
    """Daemon thread that refreshes each challenge on its own interval.

    The captcha is not on a timer; it changes only when a player asks for a
    new one.
    """

    def __init__(self, board: ChallengeBoard, intervals: dict | None = None,
                 tick: float = 1.0) -> None:
        intervals = dict(DEFAULT_REFRESH_INTERVALS if intervals is None else intervals)
        for name, seconds in intervals.items():
            if name not in CHALLENGE_NAMES:
                raise ValueError(f"Unknown challenge: {name!r}")
            if seconds <= 0:
                raise ValueError(f"Refresh interval for {name!r} must be positive")
        self.board = board
        self.intervals = intervals
        self._tick = tick
        self._due: dict[str, float] = {}
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self, *, refresh_now: bool = True) -> None:
        if self._thread is not None:
            return
        if refresh_now:
            self.board.refresh_all()
            now = time.monotonic()
            self._due = {name: now + seconds for name, seconds in self.intervals.items()}
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="challenge-refresher", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_due(self, now: float | None = None) -> list[str]:
        """Refresh every challenge whose interval has elapsed; return their names."""
        now = time.monotonic() if now is None else now
        refreshed = []
        for name, seconds in self.intervals.items():
            if now < self._due.get(name, now):
                continue
            try:
                self.board.refresh(name)
                refreshed.append(name)
            except Exception:
                logger.exception("Refreshing %s failed", name)
            self._due[name] = now + seconds
        return refreshed

    def _run(self) -> None:
        while not self._stop.wait(self._tick):
            self.run_due()
