import sys
from collections.abc import Iterable
from typing import TextIO

from ..util import bytes_size, contains_i, fit_width
from .types import SITE_TAG_PREFIX, Torrent, TorrentState


DOWNLOADING_UNKNOWN_ICON = "↓-%"


def torrent_state_icon_text(torrent: Torrent) -> str:
    match torrent.state:
        case TorrentState.DOWNLOADING:
            if torrent.size <= 0:
                return DOWNLOADING_UNKNOWN_ICON
            process = torrent.size_completed * 100 // torrent.size
            return f"↓{process}%"
        case TorrentState.SEEDING:
            return "↑U"
        case TorrentState.PAUSED:
            return "-P"
        case TorrentState.COMPLETED:
            return "✓C"
    return "-"


def get_site_from_tag(torrent: Torrent) -> str:
    return torrent.get_site_from_tag()


def generate_torrent_tag_from_site(site: str) -> str:
    return SITE_TAG_PREFIX + site


def print_torrents(
    torrents: Iterable[Torrent], filter: str = "", *, file: TextIO = sys.stdout
) -> None:
    print(
        f"{'Name':<40}  {'InfoHash':>40}  {'Size':>10}  {'State':>6}  "
        f"{'↓S':>12}  {'↑S':>12}  {'Tracker':>25}",
        file=file,
    )
    for torrent in torrents:
        if (
            filter
            and not contains_i(torrent.name, filter)
            and not contains_i(torrent.info_hash, filter)
        ):
            continue
        print(
            f"{fit_width(torrent.name, 40)}  {torrent.info_hash:>40}  "
            f"{bytes_size(torrent.size):>10}  "
            f"{torrent_state_icon_text(torrent):>6}  "
            f"{bytes_size(torrent.download_speed):>10}/s  "
            f"{bytes_size(torrent.upload_speed):>10}/s  "
            f"{torrent.tracker_domain:>25}",
            file=file,
        )
