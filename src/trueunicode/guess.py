# guessing what encoding some bytes are in. This is all heuristics - chardet
# does the work and its answers can be wrong, particularly for short texts

import chardet


def guess(data, min_confidence=0.0):
    """Return a list of (encoding, confidence) guesses for data, best first.

    data can be bytes or a str, which is guessed as its UTF-8 bytes. Nothing
    to go on gives an empty list rather than an error."""
    if isinstance(data, str):
        data = data.encode("utf-8", errors="surrogatepass")
    if not data:
        return []
    guesses = []
    for result in chardet.detect_all(bytes(data)):
        encoding = result.get("encoding")
        confidence = result.get("confidence") or 0.0
        if encoding is None or confidence < min_confidence:
            continue
        guesses.append((encoding.lower(), float(confidence)))
    guesses.sort(key=lambda g: g[1], reverse=True)
    return guesses


def best_guess(data, default="utf-8"):
    """The most likely encoding for data, or default if there's no guess"""
    guesses = guess(data)
    if guesses:
        return guesses[0][0]
    return default
