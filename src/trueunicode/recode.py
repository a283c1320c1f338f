# converting text between encodings, with a choice of what happens to
# characters which the target encoding can't represent, plus helpers to
# reverse the usual damage: <xx> byte escapes and UTF-8 read as windows-1252

import codecs
import re

PLACEHOLDER = "?"

# a run of <xx> escapes, each one standing for a single byte
BYTE_RUN_RE = re.compile(r"(?:<[0-9A-Fa-f]{2}>)+")


class EncodingError(Exception):
    pass


def _byte_escapes(raw):
    return "".join(f"<{b:02x}>" for b in raw)


def _drop(error):
    return "", error.end


def _placeholder(error):
    return PLACEHOLDER, error.end


def _byte_escape(error):
    """Undecodable input bytes and unencodable characters both become <xx>,
    one per byte (characters are taken as UTF-8)"""
    if isinstance(error, UnicodeDecodeError):
        return _byte_escapes(error.object[error.start : error.end]), error.end
    if isinstance(error, UnicodeEncodeError):
        chars = error.object[error.start : error.end]
        return _byte_escapes(chars.encode("utf-8", "surrogatepass")), error.end
    raise error


def _unicode_escape(error):
    """Unencodable characters become <U+XXXX>; there is no code point for an
    undecodable byte so those get byte escapes"""
    if isinstance(error, UnicodeEncodeError):
        chars = error.object[error.start : error.end]
        return "".join(f"<U+{ord(c):04X}>" for c in chars), error.end
    return _byte_escape(error)


def _latin1_fallback(error):
    """Lets windows-1252 encoding pass through the C1 controls it has no
    bytes for, which is what mojibake'd text tends to contain"""
    if isinstance(error, UnicodeEncodeError):
        chars = error.object[error.start : error.end]
        if all(ord(c) < 0x100 for c in chars):
            return chars.encode("latin-1"), error.end
    raise error


POLICIES = {
    "drop": "trueunicode-drop",
    "placeholder": "trueunicode-placeholder",
    "byte_escape": "trueunicode-byte-escape",
    "unicode_escape": "trueunicode-unicode-escape",
}

codecs.register_error(POLICIES["drop"], _drop)
codecs.register_error(POLICIES["placeholder"], _placeholder)
codecs.register_error(POLICIES["byte_escape"], _byte_escape)
codecs.register_error(POLICIES["unicode_escape"], _unicode_escape)
codecs.register_error("trueunicode-latin1-fallback", _latin1_fallback)


def lookup(encoding):
    """Return the canonical name for an encoding, or raise EncodingError"""
    try:
        return codecs.lookup(encoding).name
    except (LookupError, TypeError):
        raise EncodingError(f"unknown encoding: {encoding!r}")


def error_handler(on_unmappable):
    """Map a policy name to the registered codec error handler"""
    try:
        return POLICIES[on_unmappable]
    except KeyError:
        raise ValueError(
            f"unknown policy {on_unmappable!r}, expected one of {sorted(POLICIES)}"
        )


def convert(text, from_encoding, to_encoding, on_unmappable="placeholder"):
    """Convert text from one encoding to another.

    text can be bytes, which are decoded from from_encoding, or a str which
    has already been decoded. The result is a str containing only what
    to_encoding can represent: anything else (including input bytes which
    weren't valid in from_encoding) is dealt with according to on_unmappable:

    drop           - removed
    placeholder    - replaced with "?"
    byte_escape    - replaced with <xx> for each (UTF-8) byte
    unicode_escape - replaced with <U+XXXX>
    """
    errors = error_handler(on_unmappable)
    lookup(from_encoding)
    lookup(to_encoding)
    try:
        if isinstance(text, (bytes, bytearray)):
            text = bytes(text).decode(from_encoding, errors=errors)
        return text.encode(to_encoding, errors=errors).decode(to_encoding)
    except LookupError as e:
        # codecs like rot13 exist but aren't text encodings
        raise EncodingError(str(e))


def decode_bytes(text, encoding="utf-8"):
    """Replace runs of <xx> byte escapes with the characters they encode.
    A run which isn't valid in the encoding is left as it is."""
    lookup(encoding)

    def _decode_run(match):
        raw = bytes.fromhex(match.group(0).replace("<", "").replace(">", ""))
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            return match.group(0)

    try:
        return BYTE_RUN_RE.sub(_decode_run, text)
    except LookupError as e:
        raise EncodingError(str(e))


def fix_mojibake(text, wrong="cp1252", right="utf-8"):
    """Undo text which was encoded as right but decoded as wrong, eg
    "RJEÅ\\xa0AVANJE" -> "RJEŠAVANJE". Text which doesn't look like that is
    returned unchanged."""
    lookup(wrong)
    lookup(right)
    try:
        return text.encode(wrong, errors="trueunicode-latin1-fallback").decode(right)
    except UnicodeError:
        return text
    except LookupError as e:
        raise EncodingError(str(e))
