# decoder for the <U+XXXX> escapes which some tools (R's iconv with
# sub="Unicode", various CSV exporters) write in place of characters they
# couldn't encode

import re
from dataclasses import dataclass

# only the four-digit form is an escape: <U+10000> and friends are left alone
ESCAPE_RE = re.compile(r"<U\+([0-9A-Fa-f]{4})>")


def code_point_char(payload):
    """The character for the hex digits of an escape"""
    return chr(int(payload, 16))


@dataclass
class EscapeToken:
    """One <U+XXXX> escape found in a string"""

    start: int
    end: int
    payload: str

    @property
    def char(self):
        return code_point_char(self.payload)


def find_tokens(text):
    """Return the escapes in text, left to right, as EscapeTokens"""
    return [
        EscapeToken(start=m.start(), end=m.end(), payload=m.group(1))
        for m in ESCAPE_RE.finditer(text)
    ]


def _escape_char(match):
    return code_point_char(match.group(1))


def decode(text):
    """Replace every <U+XXXX> escape in text with the character it stands
    for. Anything which isn't a well-formed escape is copied as is."""
    if ESCAPE_RE.search(text) is None:
        return text
    return ESCAPE_RE.sub(_escape_char, text)
