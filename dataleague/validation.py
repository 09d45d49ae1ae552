"""Input checks shared by the command handlers.

   All of them raise ValidationError with a message meant for the user.
"""

import math
import re
from urllib.parse import urlsplit

from dataleague.errors import ValidationError
from dataleague.models import (CAPTAINS_DRAFT_MODES, MATCH_MAKER_MODES,
                               MAX_MATCH_DURATION_HOURS,
                               MIN_MATCH_DURATION_HOURS)

_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*://")


def is_valid_url(text: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not text or any(c.isspace() or ord(c) < 0x20 for c in text):
        return False
    try:
        parts = urlsplit(text)
        # Raises ValueError for an invalid port.
        _ = parts.port
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False
    host = parts.hostname
    if not host:
        return False
    return all(c.isalnum() or c in ".-_~%[]:" for c in host)


def normalize_proof_link(proof: str) -> str:
    """Adds the http:// scheme to a schemeless proof link, and checks that
       the result is a valid URL.
    """
    if not _SCHEME_RE.match(proof):
        proof = "http://" + proof
    if not is_valid_url(proof):
        raise ValidationError(f"'{proof}' is not a valid url for the proof "
                              "link")
    return proof


def check_duration(hours: int) -> int:
    if hours < MIN_MATCH_DURATION_HOURS:
        raise ValidationError("duration can not be less than "
                              f"{MIN_MATCH_DURATION_HOURS} hours")
    if hours > MAX_MATCH_DURATION_HOURS:
        raise ValidationError("duration can not be more than "
                              f"{MAX_MATCH_DURATION_HOURS} hours - this is "
                              "not a Kaggle")
    return hours


def check_match_mode(mode: str, captains_draft: bool) -> str:
    modes = CAPTAINS_DRAFT_MODES if captains_draft else MATCH_MAKER_MODES
    if mode not in modes:
        raise ValidationError(f"Match mode {mode} is invalid. Available "
                              f"match modes: [{' '.join(modes)}]")
    return mode


def split_score(score: float) -> tuple[int, int]:
    """Splits a score into its integer part and a subscore made of the
       first 10 decimal digits, eg. 10.5 -> (10, 5000000000).
    """
    if score == 0 or math.isnan(score) or math.isinf(score):
        raise ValidationError("score is **required** and must not equal 0")
    frac, whole = math.modf(score)
    digits = f"{abs(frac):.10f}"
    if digits.startswith("1."):
        # The rounding carried over into the integer part.
        whole += math.copysign(1, score)
        digits = "0.0000000000"
    subscore = int(digits[2:])
    if score < 0:
        subscore = -subscore
    return int(whole), subscore
