import unicodedata


_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


def bytes_size(size: float) -> str:
    """Human readable size in binary units, e.g. `1.5GiB`"""
    if size < 0:
        return "-"
    unit = _UNITS[0]
    for unit in _UNITS:
        if size < 1024 or unit == _UNITS[-1]:
            break
        size /= 1024
    if unit == "B":
        return f"{int(size)}B"
    return f"{size:.2f}{unit}"


def contains_i(haystack: str, needle: str) -> bool:
    return needle.casefold() in haystack.casefold()


def char_width(c: str) -> int:
    if unicodedata.combining(c):
        return 0
    if unicodedata.east_asian_width(c) in ("W", "F"):
        return 2
    return 1


def string_width(s: str) -> int:
    return sum(char_width(c) for c in s)


def fit_width(s: str, width: int, pad: bool = True) -> str:
    """
    Cut `s` to at most `width` display columns.

    Wide characters count as two columns. Pads with spaces when `pad` is set.
    """
    rv: list[str] = []
    used = 0
    for c in s:
        w = char_width(c)
        if used + w > width:
            break
        rv.append(c)
        used += w
    if pad:
        rv.append(" " * (width - used))
    return "".join(rv)
