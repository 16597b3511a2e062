"""Rule evaluators.

Every evaluator takes ``(password, snapshot)`` and returns a bool.  Plain
string checks ignore the snapshot; challenge checks read the current
values from it and fail closed when a value is missing.
"""

import re

_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_SPECIAL_RE = re.compile(r"[!@#$%^&*\\]")
_DIGIT_RE = re.compile(r"\d")

ROMAN_NUMERALS = "IVXLCDM"
PRIMES = ("2", "3", "5", "7", "11", "13", "17", "19", "23", "29", "31", "37", "41", "43", "47")
SPONSORS = ("pepsi", "starbucks", "shell")
VOWELS = "aeiouAEIOU"
WEIGHT_LIFTER = "\U0001f3cb\ufe0f"
BLACK_SQUARE = "\u2b1b"
NO_IMPOSTER = "NOIMPOSTER"


# ── Plain string checks ────────────────────────────────────────────────────


def min_length_8(password, snapshot=None):
    return len(password) >= 8


def min_length_16(password, snapshot=None):
    return len(password) >= 16


def has_mixed_case(password, snapshot=None):
    return bool(_UPPER_RE.search(password) and _LOWER_RE.search(password))


def has_special(password, snapshot=None):
    return bool(_SPECIAL_RE.search(password))


def has_digit(password, snapshot=None):
    return bool(_DIGIT_RE.search(password))


def has_roman_numeral(password, snapshot=None):
    return any(c in ROMAN_NUMERALS for c in password)


def has_prime(password, snapshot=None):
    return any(p in password for p in PRIMES)


def has_sponsor(password, snapshot=None):
    lower = password.lower()
    return any(s in lower for s in SPONSORS)


def has_vowel(password, snapshot=None):
    return any(c in VOWELS for c in password)


def has_three_uppercase(password, snapshot=None):
    return sum(1 for c in password if c.isupper()) >= 3


def has_three_weight_lifters(password, snapshot=None):
    return password.count(WEIGHT_LIFTER) >= 3


def has_palindrome(password, snapshot=None):
    """True if *password* contains a palindrome of 3+ characters.

    Any longer palindrome has one of length 3 or 4 at its centre, so only
    those two window sizes are scanned.
    """
    lower = password.lower()
    for size in (3, 4):
        for i in range(len(lower) - size + 1):
            chunk = lower[i : i + size]
            if chunk == chunk[::-1]:
                return True
    return False


def has_pdf_file(password, snapshot=None):
    return "pdf file" in password.lower()


def has_no_black_squares(password, snapshot=None):
    return BLACK_SQUARE not in password


def has_no_imposter(password, snapshot=None):
    return NO_IMPOSTER in password


# ── Date checks ────────────────────────────────────────────────────────────


def has_weekday(password, snapshot):
    return snapshot.today.strftime("%A").lower() in password.lower()


def has_month(password, snapshot):
    return snapshot.today.strftime("%B").lower() in password.lower()


# ── Challenge checks ───────────────────────────────────────────────────────


def _contains_ci(password, value):
    if not value:
        return False
    return value.lower() in password.lower()


def first_digits(value, count=3):
    """Return the first *count* digits of *value*, skipping the decimal point."""
    return "".join(c for c in value if c.isdigit())[:count]


def has_math_constant(password, snapshot):
    digits = first_digits(snapshot.constant_value)
    if len(digits) < 3:
        return False
    return digits in password


def has_captcha(password, snapshot):
    code = snapshot.captcha_code
    if not code:
        return False
    return code in password


def has_wordle_answer(password, snapshot):
    return _contains_ci(password, snapshot.wordle_answer)


def has_qr_word(password, snapshot):
    return _contains_ci(password, snapshot.qr_word)


def has_hex_color(password, snapshot):
    hex_code = snapshot.color_hex
    if not hex_code:
        return False
    return _contains_ci(password, hex_code) or _contains_ci(password, hex_code.lstrip("#"))


def has_chess_move(password, snapshot):
    return _contains_ci(password, snapshot.chess_best_move)


def has_update_string(password, snapshot):
    return bool(snapshot.update_string) and snapshot.update_string in password


def has_raid_unlock(password, snapshot):
    return bool(snapshot.raid_unlock_string) and snapshot.raid_unlock_string in password
