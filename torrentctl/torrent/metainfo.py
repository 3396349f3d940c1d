from dataclasses import dataclass
from io import BytesIO

import torf

from .exceptions import InvalidTorrentError


@dataclass(frozen=True)
class MetaInfo:
    info_hash: str
    name: str


def read_metainfo(content: bytes) -> MetaInfo:
    """Reads identity from raw .torrent content"""
    try:
        torrent = torf.Torrent.read_stream(BytesIO(content))
    except torf.TorfError as e:
        raise InvalidTorrentError(f"invalid torrent content: {e}") from e
    return MetaInfo(info_hash=torrent.infohash.lower(), name=torrent.name or "")
