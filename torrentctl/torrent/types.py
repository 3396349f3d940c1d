from dataclasses import dataclass, field
from enum import StrEnum


SITE_TAG_PREFIX = "site:"


class TorrentState(StrEnum):
    """Simplified torrent state, backends map their native states onto it"""

    SEEDING = "seeding"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    PAUSED = "paused"


@dataclass(frozen=True)
class Torrent:
    """Snapshot of one torrent as reported by a backend"""

    info_hash: str
    name: str
    state: TorrentState
    tracker_domain: str = ""
    atime: int = 0  # timestamp torrent added
    ctime: int = 0  # timestamp torrent completed, <= 0 if not completed
    category: str = ""
    tags: tuple[str, ...] = ()
    downloaded: int = 0
    download_speed: int = 0
    download_speed_limit: int = -1  # -1 means no limit
    uploaded: int = 0
    upload_speed: int = 0
    uploaded_speed_limit: int = -1  # -1 means no limit
    size: int = 0
    size_completed: int = 0
    seeders: int = -1
    leechers: int = -1
    meta: dict[str, int] = field(default_factory=dict, hash=False)
    save_path: str = ""
    content_path: str = ""

    def get_site_from_tag(self) -> str:
        for tag in self.tags:
            if tag.startswith(SITE_TAG_PREFIX):
                return tag[len(SITE_TAG_PREFIX) :]
        return ""


@dataclass(frozen=True)
class Status:
    """Client level counters at query time"""

    free_space_on_disk: int = -1  # -1 means unknown / unlimited
    download_speed: int = 0
    upload_speed: int = 0
    download_speed_limit: int = 0  # <= 0 means no limit
    upload_speed_limit: int = 0  # <= 0 means no limit
    # Forbids automated adds only, explicit user adds are still allowed.
    no_add: bool = False


@dataclass(frozen=True)
class TorrentOption:
    """
    Desired state for add/modify.

    Every field left as None is untouched. Any other value, including 0,
    empty string or empty tags, is applied as is.
    """

    name: str | None = None
    category: str | None = None
    tags: tuple[str, ...] | None = None  # full replacement, not a delta
    download_speed_limit: int | None = None
    upload_speed_limit: int | None = None
    paused: bool | None = None
