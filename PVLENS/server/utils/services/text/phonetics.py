from __future__ import annotations

from typing import Any

SOUNDEX_LENGTH = 4

SOUNDEX_DIGITS: dict[str, str] = {}
for letters, digit in (
    ("BFPV", "1"),
    ("CGJKQSXZ", "2"),
    ("DT", "3"),
    ("L", "4"),
    ("MN", "5"),
    ("R", "6"),
):
    for letter in letters:
        SOUNDEX_DIGITS[letter] = digit

# vowels break runs of equal codes, H and W do not
SOUNDEX_SEPARATORS = frozenset("AEIOUY")
SOUNDEX_TRANSPARENT = frozenset("HW")


# -----------------------------------------------------------------------------
def soundex(value: Any) -> str:
    """American Soundex code: first letter followed by three digits.

    Characters outside A-Z are ignored. Input without any letter yields an
    empty string, which never matches anything.
    """
    if not isinstance(value, str):
        return ""
    letters = [char for char in value.upper() if "A" <= char <= "Z"]
    if not letters:
        return ""

    first = letters[0]
    code = [first]
    previous = SOUNDEX_DIGITS.get(first, "")
    for letter in letters[1:]:
        if letter in SOUNDEX_TRANSPARENT:
            continue
        if letter in SOUNDEX_SEPARATORS:
            previous = ""
            continue
        digit = SOUNDEX_DIGITS[letter]
        if digit != previous:
            code.append(digit)
            if len(code) == SOUNDEX_LENGTH:
                break
        previous = digit

    return "".join(code).ljust(SOUNDEX_LENGTH, "0")


__all__ = ["SOUNDEX_LENGTH", "soundex"]
