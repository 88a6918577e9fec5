"""Base62 codec for non-negative integers (short keys)."""

BASE62 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_INDEX = {char: i for i, char in enumerate(BASE62)}


def encode(n):
    """Encode a non-negative integer, most significant digit first."""
    if n < 0:
        raise ValueError(f"cannot encode negative value: {n}")
    if n == 0:
        return BASE62[0]

    chars = []
    while n > 0:
        n, remainder = divmod(n, 62)
        chars.append(BASE62[remainder])

    return "".join(reversed(chars))


def decode(text):
    """Inverse of encode(). Raises ValueError on empty or foreign characters."""
    if not text:
        raise ValueError("cannot decode empty string")
    n = 0
    for char in text:
        try:
            n = n * 62 + _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base62 character: {char!r}") from None
    return n
