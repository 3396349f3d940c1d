"""
Smuggles integer metadata through a torrent's display name.

A name carrying metadata looks like `Some.Name__meta.dl_3600.rt_2`: the
plain name, the `__meta.` separator, then `.` joined `key_value` tokens.
Keys are ASCII letters and digits, values are signed base-10 integers.
Zero is never written, so zero and absent cannot be told apart.
"""

import logging
import re
from collections.abc import Mapping


META_SEPARATOR = "__meta."

_META_PATTERN = re.compile(r"^(?P<name>.*?)__meta\.(?P<meta>[-._a-zA-Z0-9]+)$")
_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
_VALUE_PATTERN = re.compile(r"^[-+]?[0-9]+$")


_L = logging.getLogger(__name__)


def generate_name_with_meta(name: str, meta: Mapping[str, int] | None) -> str:
    if not meta:
        return name
    tokens = [f"{key}_{value}" for key, value in sorted(meta.items()) if value != 0]
    if not tokens:
        return name
    return name + META_SEPARATOR + ".".join(tokens)


def parse_meta_from_name(fullname: str) -> tuple[str, dict[str, int] | None]:
    """
    Splits `fullname` into the plain name and its metadata.

    Returns `(fullname, None)` if there is no metadata suffix at all.
    Malformed tokens are dropped, this function never raises.
    """
    m = _META_PATTERN.fullmatch(fullname)
    if not m:
        return fullname, None

    meta: dict[str, int] = {}
    for token in m.group("meta").split("."):
        key, sep, raw_value = token.partition("_")
        if (
            not sep
            or not _KEY_PATTERN.match(key)
            or not _VALUE_PATTERN.match(raw_value)
        ):
            _L.debug(f"skipped meta token {token!r} in {fullname!r}")
            continue
        value = int(raw_value)
        if value != 0:
            meta[key] = value
    return m.group("name"), meta


def merge_meta(
    base: Mapping[str, int] | None, override: Mapping[str, int] | None
) -> dict[str, int]:
    """Keys from `override` win, a zero value removes the key."""
    rv = dict(base) if base else {}
    if not override:
        return rv
    for key, value in override.items():
        if value == 0:
            rv.pop(key, None)
        else:
            rv[key] = value
    return rv
