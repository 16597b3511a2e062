"""passgame -- Streamlit web interface."""

import streamlit as st

from passgame.challenges import ChallengeBoard, ChallengeRefresher
from passgame.config import configure_logging, load_config, load_difficulties
from passgame.session import GameSession

# ── Lucide icons (from lucide.dev) ────────────────────────────────────────

_LUCIDE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="{s}" height="{s}" '
    'viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" '
    'stroke-linecap="round" stroke-linejoin="round">{paths}</svg>'
)

ICON_LOCK = _LUCIDE.format(s=32, paths=(
    '<rect width="18" height="11" x="3" y="11" rx="2" ry="2"/>'
    '<path d="M7 11V7a5 5 0 0 1 10 0v4"/>'
))

ICON_LIST_CHECKS = _LUCIDE.format(s=20, paths=(
    '<path d="m3 17 2 2 4-4"/><path d="m3 7 2 2 4-4"/>'
    '<path d="M13 6h8"/><path d="M13 12h8"/><path d="M13 18h8"/>'
))

# ── Page config ───────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Password Game",
    page_icon="\U0001f510",
    layout="centered",
)

# ── Shared state ──────────────────────────────────────────────────────────

config = load_config()
configure_logging(config.log_level)


@st.cache_resource
def _challenge_board() -> ChallengeBoard:
    """One board and refresher per server process, shared by every player."""
    board = ChallengeBoard(online=config.online, timeout=config.http_timeout)
    ChallengeRefresher(board, config.refresh_intervals).start()
    return board


board = _challenge_board()
difficulties = load_difficulties(config.difficulties_path)

# ── Custom CSS ────────────────────────────────────────────────────────────

st.markdown("""<style>
.rule { border-radius: 8px; padding: 10px 14px; margin-bottom: 8px;
        border: 1px solid #e0e0e0; }
.rule.unsatisfied { background: #ffebee; border-color: #ef9a9a; }
.rule.satisfied   { background: #e8f5e9; border-color: #a5d6a7; }
.rule.newly-revealed { animation: reveal 0.6s ease-out; }
.rule .hint { color: #616161; font-size: 0.85em; margin-top: 4px; }
.rule .badge { font-size: 0.75em; padding: 1px 6px; border-radius: 4px;
               background: #1976d2; color: white; margin-left: 6px; }
@keyframes reveal { from { opacity: 0; transform: translateY(-6px); }
                    to   { opacity: 1; transform: none; } }
</style>""", unsafe_allow_html=True)

# ── Header ────────────────────────────────────────────────────────────────

st.markdown(
    f'<h1 style="display:flex;align-items:center;gap:10px">'
    f'{ICON_LOCK} The Password Game</h1>',
    unsafe_allow_html=True,
)
st.caption(
    "Choose a password. Each rule you satisfy reveals the next one.  \n"
    "Rules never go away once shown, so keep every one of them happy."
)

# ── Session ───────────────────────────────────────────────────────────────

keys = list(difficulties)
default_key = config.default_difficulty if config.default_difficulty in keys else keys[0]
difficulty = st.selectbox(
    "Difficulty",
    keys,
    index=keys.index(default_key),
    format_func=lambda k: f"{difficulties[k].icon} {difficulties[k].name} -- {difficulties[k].description}",
)

if "game" not in st.session_state:
    st.session_state.game = GameSession(
        difficulty=difficulty, assignments_path=config.assignments_path,
    )
game: GameSession = st.session_state.game
if game.difficulty != difficulty:
    game.change_difficulty(difficulty)

password = st.text_input(
    "Password",
    key="password",
    placeholder="Enter a password…",
    autocomplete="off",
)

snapshot = board.snapshot()
result = game.submit(password, snapshot, config.engine_policy())

if result.milestone is not None:
    st.toast(f"Rule {result.milestone} cleared!", icon="✅")
if result.completed_now:
    st.balloons()

st.progress(
    result.progress_percentage / 100,
    text=f"{result.satisfied_count}/{result.total} rules satisfied",
)

# ── Rules ─────────────────────────────────────────────────────────────────

st.markdown(
    f'<p style="display:flex;align-items:center;gap:6px">'
    f'{ICON_LIST_CHECKS} <strong>Rules</strong></p>',
    unsafe_allow_html=True,
)

if result.all_satisfied:
    st.success("**You win!** Every rule is satisfied.")


def _challenge_widget(rule) -> None:
    if rule.challenge == "captcha":
        st.code(" ".join(snapshot.captcha_code), language=None)
    elif rule.challenge == "qr":
        st.code(snapshot.qr_word, language=None)
    elif rule.challenge == "color":
        st.markdown(
            f"<div style='width:64px;height:32px;border-radius:4px;"
            f"background:{snapshot.color_hex or '#FF0000'}'></div>",
            unsafe_allow_html=True,
        )
    elif rule.challenge == "chess":
        st.code(snapshot.chess_fen, language=None)
    else:
        return
    refresh_name = {"qr": "qr_word"}.get(rule.challenge, rule.challenge)
    if st.button("\U0001f504 New challenge", key=f"refresh-{rule.id}"):
        board.refresh(refresh_name)
        st.rerun()


for rule in result.sorted_rules:
    classes = ["rule", "satisfied" if rule.satisfied else "unsatisfied"]
    badge = ""
    if rule.newly_revealed:
        classes.append("newly-revealed")
        badge = '<span class="badge">new</span>'
    elif rule.newly_satisfied:
        badge = '<span class="badge">✓</span>'
    hint = ""
    if not rule.satisfied and config.show_hints:
        hint = f'<div class="hint">{rule.render_hint(snapshot)}</div>'
    st.markdown(
        f'<div class="{" ".join(classes)}"><strong>Rule {rule.id}</strong>{badge}'
        f"<div>{rule.description}</div>{hint}</div>",
        unsafe_allow_html=True,
    )
    if not rule.satisfied:
        _challenge_widget(rule)


def _start_over() -> None:
    st.session_state.game.reset()
    st.session_state.password = ""


st.button("Start over", on_click=_start_over)
