"""
qBittorrent client implementation.

Fields of `TorrentOption` left as None are not touched by `modify_torrent`.
Speed limits <= 0 mean unlimited.
"""

import logging
from collections.abc import Iterable, Mapping
from threading import Lock
from typing import Any
from urllib.parse import urlparse

from qbittorrentapi import Client, TorrentDictionary
from qbittorrentapi.exceptions import APIError
from typing_extensions import override

from ..settings import ClientData, Data
from .client import ConfigAccessor, TorrentClient, filter_torrents
from .exceptions import (
    CommunicationError,
    DeleteTorrentsError,
    DuplicateTorrentError,
    TorrentNotFoundError,
)
from .meta import generate_name_with_meta, merge_meta, parse_meta_from_name
from .metainfo import read_metainfo
from .registry import RegInfo
from .types import Status, Torrent, TorrentOption, TorrentState


_L = logging.getLogger(__name__)


_STATE_MAPPING = {
    "downloading": TorrentState.DOWNLOADING,
    "metaDL": TorrentState.DOWNLOADING,
    "forcedMetaDL": TorrentState.DOWNLOADING,
    "forcedDL": TorrentState.DOWNLOADING,
    "stalledDL": TorrentState.DOWNLOADING,
    "queuedDL": TorrentState.DOWNLOADING,
    "checkingDL": TorrentState.DOWNLOADING,
    "allocating": TorrentState.DOWNLOADING,
    "uploading": TorrentState.SEEDING,
    "forcedUP": TorrentState.SEEDING,
    "stalledUP": TorrentState.SEEDING,
    "queuedUP": TorrentState.SEEDING,
    "checkingUP": TorrentState.SEEDING,
    "pausedDL": TorrentState.PAUSED,
    "stoppedDL": TorrentState.PAUSED,
    "pausedUP": TorrentState.COMPLETED,
    "stoppedUP": TorrentState.COMPLETED,
}


class QbittorrentClient(TorrentClient):
    """qBittorrent torrent client implementation"""

    def __init__(self, name: str, config: ClientData, global_config: Data) -> None:
        super().__init__(name, config, global_config)
        self._client: Client | None = None
        self._client_lock = Lock()

    def _get_client(self) -> Client:
        """Get or create qBittorrent client connection"""
        with self._client_lock:
            if self._client is None:
                client = Client(
                    host=_get_host(self.config),
                    username=self.config.username,
                    password=self.config.password,
                    REQUESTS_ARGS={"timeout": self.global_config.timeout},
                )
                try:
                    client.auth_log_in()
                except APIError as e:
                    _L.error(f"{self.name}: failed to login to qBittorrent: {e}")
                    raise CommunicationError(f"{self.name}: {e}") from e
                self._client = client
            return self._client

    @override
    def get_torrents(
        self, state: str = "", category: str = "", show_all: bool = False
    ) -> list[Torrent]:
        torrents = self._get_cached_torrents(self._fetch_torrents)
        return filter_torrents(torrents, state, category, show_all)

    def _fetch_torrents(self) -> list[Torrent]:
        client = self._get_client()
        try:
            torrents = client.torrents_info()
        except APIError as e:
            _L.error(f"{self.name}: failed to get torrents: {e}")
            raise CommunicationError(f"{self.name}: {e}") from e
        return [_convert_torrent(t) for t in torrents]

    @override
    def add_torrent(
        self,
        content: bytes,
        option: TorrentOption | None = None,
        meta: Mapping[str, int] | None = None,
    ) -> None:
        option = option or TorrentOption()
        info = read_metainfo(content)
        name = generate_name_with_meta(option.name or info.name, meta)

        kwargs: dict[str, Any] = {}
        if self.config.download_dir:
            kwargs["save_path"] = self.config.download_dir
        if name != info.name:
            kwargs["rename"] = name
        if option.category is not None:
            kwargs["category"] = option.category
        if option.tags:
            kwargs["tags"] = list(option.tags)
        if option.paused is not None:
            kwargs["is_paused"] = option.paused
        if option.download_speed_limit is not None:
            kwargs["download_limit"] = max(option.download_speed_limit, 0)
        if option.upload_speed_limit is not None:
            kwargs["upload_limit"] = max(option.upload_speed_limit, 0)

        client = self._get_client()
        with self._lock:
            try:
                if client.torrents_info(torrent_hashes=info.info_hash):
                    raise DuplicateTorrentError(info.info_hash)
                rv = client.torrents_add(torrent_files=content, **kwargs)
                if rv != "Ok." and client.torrents_info(torrent_hashes=info.info_hash):
                    raise DuplicateTorrentError(info.info_hash)
            except APIError as e:
                _L.error(f"{self.name}: failed to add torrent {info.info_hash}: {e}")
                raise CommunicationError(f"{self.name}: {e}") from e
            finally:
                self.purge_cache()
        if rv != "Ok.":
            raise CommunicationError(f"{self.name}: add torrent failed: {rv}")
        _L.info(f"{self.name}: added torrent {info.info_hash} {name}")

    @override
    def modify_torrent(
        self,
        info_hash: str,
        option: TorrentOption,
        meta: Mapping[str, int] | None = None,
    ) -> None:
        client = self._get_client()
        with self._lock:
            try:
                self._modify_torrent(client, info_hash, option, meta)
            except APIError as e:
                _L.error(f"{self.name}: failed to modify torrent {info_hash}: {e}")
                raise CommunicationError(f"{self.name}: {e}") from e
            finally:
                self.purge_cache()
        _L.info(f"{self.name}: modified torrent {info_hash}")

    def _modify_torrent(
        self,
        client: Client,
        info_hash: str,
        option: TorrentOption,
        meta: Mapping[str, int] | None,
    ) -> None:
        torrents = client.torrents_info(torrent_hashes=info_hash)
        if not torrents:
            raise TorrentNotFoundError(info_hash)
        current = torrents[0]

        plain_name, current_meta = parse_meta_from_name(current.name)
        new_name = generate_name_with_meta(
            option.name if option.name is not None else plain_name,
            merge_meta(current_meta, meta),
        )
        if new_name != current.name:
            client.torrents_rename(torrent_hash=info_hash, new_torrent_name=new_name)
        if option.category is not None and option.category != current.category:
            client.torrents_set_category(
                category=option.category, torrent_hashes=info_hash
            )
        if option.tags is not None:
            current_tags = _split_tags(current.tags)
            removed = [_ for _ in current_tags if _ not in option.tags]
            added = [_ for _ in option.tags if _ not in current_tags]
            if removed:
                client.torrents_remove_tags(tags=removed, torrent_hashes=info_hash)
            if added:
                client.torrents_add_tags(tags=added, torrent_hashes=info_hash)
        if option.download_speed_limit is not None:
            client.torrents_set_download_limit(
                limit=max(option.download_speed_limit, 0), torrent_hashes=info_hash
            )
        if option.upload_speed_limit is not None:
            client.torrents_set_upload_limit(
                limit=max(option.upload_speed_limit, 0), torrent_hashes=info_hash
            )
        if option.paused is True:
            client.torrents_pause(torrent_hashes=info_hash)
        elif option.paused is False:
            client.torrents_resume(torrent_hashes=info_hash)

    @override
    def delete_torrents(self, info_hashes: Iterable[str], delete_files: bool) -> None:
        client = self._get_client()
        failures: dict[str, Exception] = {}
        with self._lock:
            for info_hash in info_hashes:
                try:
                    client.torrents_delete(
                        delete_files=delete_files, torrent_hashes=info_hash
                    )
                    _L.info(f"{self.name}: removed torrent {info_hash}")
                except APIError as e:
                    _L.error(f"{self.name}: failed to remove torrent {info_hash}: {e}")
                    failures[info_hash] = e
            self.purge_cache()
        if failures:
            raise DeleteTorrentsError(failures)

    @override
    def get_status(self) -> Status:
        client = self._get_client()
        try:
            info = client.transfer_info()
            maindata = client.sync_maindata()
        except APIError as e:
            _L.error(f"{self.name}: failed to get status: {e}")
            raise CommunicationError(f"{self.name}: {e}") from e
        server_state = maindata.get("server_state", {})
        free_space = int(server_state.get("free_space_on_disk", -1))
        return Status(
            free_space_on_disk=free_space,
            download_speed=info.dl_info_speed,
            upload_speed=info.up_info_speed,
            download_speed_limit=info.dl_rate_limit,
            upload_speed_limit=info.up_rate_limit,
            no_add=self._compute_no_add(free_space),
        )

    @override
    def set_download_speed_limit(self, limit: int) -> None:
        client = self._get_client()
        with self._lock:
            try:
                client.transfer_set_download_limit(limit=max(limit, 0))
            except APIError as e:
                raise CommunicationError(f"{self.name}: {e}") from e

    @override
    def set_upload_speed_limit(self, limit: int) -> None:
        client = self._get_client()
        with self._lock:
            try:
                client.transfer_set_upload_limit(limit=max(limit, 0))
            except APIError as e:
                raise CommunicationError(f"{self.name}: {e}") from e

    @override
    def _extra_config_accessors(self) -> dict[str, ConfigAccessor]:
        return {
            "save_path": ConfigAccessor(
                getter=lambda: str(self._get_preference("save_path")),
                setter=lambda v: self._set_preference("save_path", v),
            ),
        }

    def _get_preference(self, key: str) -> Any:
        client = self._get_client()
        try:
            preferences = client.app_preferences()
        except APIError as e:
            raise CommunicationError(f"{self.name}: {e}") from e
        return preferences.get(key, "")

    def _set_preference(self, key: str, value: Any) -> None:
        if value == "":
            raise ValueError(f"empty value for {key}")
        client = self._get_client()
        with self._lock:
            try:
                client.app_set_preferences(prefs={key: value})
            except APIError as e:
                raise CommunicationError(f"{self.name}: {e}") from e


def _get_host(config: ClientData) -> str:
    if "://" in config.host:
        return config.host
    port = config.port or 8080
    return f"http://{config.host}:{port}"


def _split_tags(tags: str) -> list[str]:
    return [_.strip() for _ in tags.split(",") if _.strip()]


def _map_state(torrent: TorrentDictionary) -> TorrentState:
    state = _STATE_MAPPING.get(torrent.state)
    if state:
        return state
    # moving, error, missingFiles and friends
    if torrent.progress >= 1:
        return TorrentState.COMPLETED
    return TorrentState.PAUSED


def _convert_torrent(torrent: TorrentDictionary) -> Torrent:
    """Convert qBittorrent TorrentDictionary to common Torrent"""
    name, meta = parse_meta_from_name(torrent.name)
    size = torrent.size
    size_completed = min(torrent.completed, size)
    completion_on = torrent.completion_on
    return Torrent(
        info_hash=torrent.hash,
        name=name,
        state=_map_state(torrent),
        tracker_domain=urlparse(torrent.tracker).hostname or "",
        atime=torrent.added_on,
        ctime=completion_on if completion_on > 0 and size_completed >= size else 0,
        category=torrent.category,
        tags=tuple(_split_tags(torrent.tags)),
        downloaded=torrent.downloaded,
        download_speed=torrent.dlspeed,
        download_speed_limit=torrent.dl_limit if torrent.dl_limit > 0 else -1,
        uploaded=torrent.uploaded,
        upload_speed=torrent.upspeed,
        uploaded_speed_limit=torrent.up_limit if torrent.up_limit > 0 else -1,
        size=size,
        size_completed=size_completed,
        seeders=torrent.num_complete,
        leechers=torrent.num_incomplete,
        meta=meta or {},
        save_path=torrent.save_path,
        content_path=torrent.content_path,
    )


REG_INFO = RegInfo(name="qbittorrent", creator=QbittorrentClient)
