import logging
import time
from abc import ABCMeta, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from threading import Lock

from ..settings import ClientData, Data
from .exceptions import InvalidValueError, TorrentClientError, UnknownVariableError
from .types import Status, Torrent, TorrentOption, TorrentState


_L = logging.getLogger(__name__)


class ConfigVariable(StrEnum):
    """Runtime settings every client understands"""

    DOWNLOAD_SPEED_LIMIT = "global_download_speed_limit"
    UPLOAD_SPEED_LIMIT = "global_upload_speed_limit"


@dataclass(frozen=True)
class ConfigAccessor:
    getter: Callable[[], str]
    setter: Callable[[str], None]


def parse_int_value(value: str) -> int:
    return int(value.strip())


def filter_torrents(
    torrents: Iterable[Torrent], state: str, category: str, show_all: bool
) -> list[Torrent]:
    """
    Applies the common `get_torrents` filters.

    Archived torrents (completed and no longer seeding) are hidden unless
    `show_all` is set or they are explicitly asked for by `state`.
    """
    rv: list[Torrent] = []
    for torrent in torrents:
        if state and torrent.state != state:
            continue
        if category and torrent.category != category:
            continue
        if not state and not show_all and torrent.state == TorrentState.COMPLETED:
            continue
        rv.append(torrent)
    return rv


def _root_name(content_path: str) -> str:
    return content_path.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


class TorrentClient(metaclass=ABCMeta):
    """
    Abstract base class for torrent client implementations.

    Instances may be shared across threads. Implementations guard their own
    connection and cache, and serialize mutations with `self._lock`.
    """

    def __init__(self, name: str, config: ClientData, global_config: Data) -> None:
        self.name = name
        self.config = config
        self.global_config = global_config
        self._lock = Lock()
        self._cache_lock = Lock()
        self._torrents_cache: list[Torrent] | None = None
        self._torrents_cache_time = 0.0

    def get_name(self) -> str:
        return self.name

    def get_client_config(self) -> ClientData:
        return self.config

    @abstractmethod
    def get_torrents(
        self, state: str = "", category: str = "", show_all: bool = False
    ) -> list[Torrent]:
        """
        Get a snapshot of torrents.

        Empty `state` or `category` matches anything. Raises
        `CommunicationError` on transport failure.
        """
        pass

    @abstractmethod
    def add_torrent(
        self,
        content: bytes,
        option: TorrentOption | None = None,
        meta: Mapping[str, int] | None = None,
    ) -> None:
        """
        Add a torrent from raw .torrent content.

        `meta` is folded into the torrent name. Raises `DuplicateTorrentError`
        if the torrent is already in the client.
        """
        pass

    @abstractmethod
    def modify_torrent(
        self,
        info_hash: str,
        option: TorrentOption,
        meta: Mapping[str, int] | None = None,
    ) -> None:
        """Apply every non-None field of `option`"""
        pass

    @abstractmethod
    def delete_torrents(self, info_hashes: Iterable[str], delete_files: bool) -> None:
        """
        Remove torrents, optionally with their data.

        Keeps going past failed items and raises one `DeleteTorrentsError`
        naming all of them at the end.
        """
        pass

    def torrent_root_path_exists(self, root_folder: str) -> bool:
        """False when unknown or the client is unreachable"""
        if not root_folder:
            return False
        try:
            torrents = self.get_torrents(show_all=True)
        except TorrentClientError as e:
            _L.warning(f"{self.name}: cannot check root path {root_folder}: {e}")
            return False
        return any(_root_name(t.content_path) == root_folder for t in torrents)

    @abstractmethod
    def get_status(self) -> Status:
        pass

    @abstractmethod
    def set_download_speed_limit(self, limit: int) -> None:
        """Bytes per second, <= 0 removes the limit"""
        pass

    @abstractmethod
    def set_upload_speed_limit(self, limit: int) -> None:
        """Bytes per second, <= 0 removes the limit"""
        pass

    def purge_cache(self) -> None:
        with self._cache_lock:
            self._torrents_cache = None
            self._torrents_cache_time = 0.0

    def get_config(self, variable: str) -> str:
        accessor = self._get_config_accessor(variable)
        return accessor.getter()

    def set_config(self, variable: str, value: str) -> None:
        accessor = self._get_config_accessor(variable)
        try:
            accessor.setter(value)
        except ValueError as e:
            raise InvalidValueError(variable, value) from e
        _L.info(f"{self.name}: set {variable} = {value}")

    def _get_config_accessor(self, variable: str) -> ConfigAccessor:
        accessors = {
            ConfigVariable.DOWNLOAD_SPEED_LIMIT: ConfigAccessor(
                getter=lambda: str(self.get_status().download_speed_limit),
                setter=lambda v: self.set_download_speed_limit(parse_int_value(v)),
            ),
            ConfigVariable.UPLOAD_SPEED_LIMIT: ConfigAccessor(
                getter=lambda: str(self.get_status().upload_speed_limit),
                setter=lambda v: self.set_upload_speed_limit(parse_int_value(v)),
            ),
        }
        accessors.update(self._extra_config_accessors())
        accessor = accessors.get(variable)
        if not accessor:
            raise UnknownVariableError(variable)
        return accessor

    def _extra_config_accessors(self) -> dict[str, ConfigAccessor]:
        """Backend specific variables"""
        return {}

    def _get_cached_torrents(self, fetch: Callable[[], list[Torrent]]) -> list[Torrent]:
        ttl = self.config.cache_ttl
        if ttl <= 0:
            return fetch()
        with self._cache_lock:
            now = time.monotonic()
            if (
                self._torrents_cache is not None
                and now - self._torrents_cache_time < ttl
            ):
                return self._torrents_cache
            torrents = fetch()
            self._torrents_cache = torrents
            self._torrents_cache_time = now
            return torrents

    def _compute_no_add(self, free_space: int) -> bool:
        if self.config.no_add:
            return True
        return 0 <= free_space < self.config.min_disk_space
