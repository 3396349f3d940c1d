"""
Transmission client implementation.

Transmission has no category, so the category is kept as a
`category:<name>` label next to the tags. Speed limits are rounded down to
KiB/s. Fields of `TorrentOption` left as None are not touched.
"""

import logging
from collections.abc import Iterable, Mapping
from threading import Lock
from typing import Any
from urllib.parse import urlparse

from transmission_rpc import Client, Torrent as RpcTorrent, TransmissionError
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


CATEGORY_LABEL_PREFIX = "category:"

_FIELDS = [
    "id",
    "hashString",
    "name",
    "status",
    "percentDone",
    "addedDate",
    "doneDate",
    "labels",
    "downloadedEver",
    "uploadedEver",
    "rateDownload",
    "rateUpload",
    "downloadLimit",
    "downloadLimited",
    "uploadLimit",
    "uploadLimited",
    "sizeWhenDone",
    "leftUntilDone",
    "trackerStats",
    "downloadDir",
]

# transmission status codes
_STOPPED = 0
_DOWNLOAD_STATES = {1, 2, 3, 4}  # check wait, check, download wait, download
_SEED_STATES = {5, 6}  # seed wait, seed


_L = logging.getLogger(__name__)


class TransmissionClient(TorrentClient):
    """Transmission torrent client implementation"""

    def __init__(self, name: str, config: ClientData, global_config: Data) -> None:
        super().__init__(name, config, global_config)
        self._client: Client | None = None
        self._client_lock = Lock()

    def _get_client(self) -> Client:
        """Get or create Transmission client connection"""
        with self._client_lock:
            if self._client is None:
                try:
                    self._client = Client(
                        host=self.config.host,
                        port=self.config.port or 9091,
                        username=self.config.username,
                        password=self.config.password,
                        timeout=self.global_config.timeout,
                    )
                except TransmissionError as e:
                    _L.error(f"{self.name}: failed to connect to Transmission: {e}")
                    raise CommunicationError(f"{self.name}: {e}") from e
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
            torrents = client.get_torrents(arguments=_FIELDS)
        except TransmissionError as e:
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

        kwargs: dict[str, Any] = {
            "labels": _to_labels(option.category or "", option.tags or ()),
        }
        if self.config.download_dir:
            kwargs["download_dir"] = self.config.download_dir
        if option.paused is not None:
            kwargs["paused"] = option.paused

        client = self._get_client()
        with self._lock:
            try:
                if client.get_torrents(ids=[info.info_hash], arguments=["id"]):
                    raise DuplicateTorrentError(info.info_hash)
                added = client.add_torrent(content, **kwargs)
                if name != info.name:
                    client.rename_torrent_path(added.id, location=info.name, name=name)
                limits = _to_limit_kwargs(option)
                if limits:
                    client.change_torrent(added.id, **limits)
            except TransmissionError as e:
                _L.error(f"{self.name}: failed to add torrent {info.info_hash}: {e}")
                raise CommunicationError(f"{self.name}: {e}") from e
            finally:
                self.purge_cache()
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
            except TransmissionError as e:
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
        try:
            torrents = client.get_torrents(ids=[info_hash], arguments=_FIELDS)
        except ValueError as e:
            # not a hash transmission can look up
            raise TorrentNotFoundError(info_hash) from e
        if not torrents:
            raise TorrentNotFoundError(info_hash)
        current = _convert_torrent(torrents[0])
        torrent_id = torrents[0].fields["id"]
        full_name = torrents[0].fields["name"]

        new_name = generate_name_with_meta(
            option.name if option.name is not None else current.name,
            merge_meta(current.meta, meta),
        )
        if new_name != full_name:
            client.rename_torrent_path(torrent_id, location=full_name, name=new_name)

        kwargs = _to_limit_kwargs(option)
        if option.category is not None or option.tags is not None:
            kwargs["labels"] = _to_labels(
                option.category if option.category is not None else current.category,
                option.tags if option.tags is not None else current.tags,
            )
        if kwargs:
            client.change_torrent(torrent_id, **kwargs)

        if option.paused is True:
            client.stop_torrent(torrent_id)
        elif option.paused is False:
            client.start_torrent(torrent_id)

    @override
    def delete_torrents(self, info_hashes: Iterable[str], delete_files: bool) -> None:
        client = self._get_client()
        failures: dict[str, Exception] = {}
        with self._lock:
            for info_hash in info_hashes:
                try:
                    client.remove_torrent(info_hash, delete_data=delete_files)
                    _L.info(f"{self.name}: removed torrent {info_hash}")
                except (TransmissionError, ValueError) as e:
                    _L.error(f"{self.name}: failed to remove torrent {info_hash}: {e}")
                    failures[info_hash] = e
            self.purge_cache()
        if failures:
            raise DeleteTorrentsError(failures)

    @override
    def get_status(self) -> Status:
        client = self._get_client()
        try:
            session = client.get_session()
            stats = client.session_stats()
            free_space = client.free_space(session.download_dir)
        except TransmissionError as e:
            _L.error(f"{self.name}: failed to get status: {e}")
            raise CommunicationError(f"{self.name}: {e}") from e
        if free_space is None:
            free_space = -1
        return Status(
            free_space_on_disk=free_space,
            download_speed=stats.download_speed,
            upload_speed=stats.upload_speed,
            download_speed_limit=(
                session.speed_limit_down * 1024
                if session.speed_limit_down_enabled
                else 0
            ),
            upload_speed_limit=(
                session.speed_limit_up * 1024 if session.speed_limit_up_enabled else 0
            ),
            no_add=self._compute_no_add(free_space),
        )

    @override
    def set_download_speed_limit(self, limit: int) -> None:
        if limit > 0:
            self._set_session(
                speed_limit_down=_to_kib(limit), speed_limit_down_enabled=True
            )
        else:
            self._set_session(speed_limit_down_enabled=False)

    @override
    def set_upload_speed_limit(self, limit: int) -> None:
        if limit > 0:
            self._set_session(speed_limit_up=_to_kib(limit), speed_limit_up_enabled=True)
        else:
            self._set_session(speed_limit_up_enabled=False)

    @override
    def _extra_config_accessors(self) -> dict[str, ConfigAccessor]:
        return {
            "download_dir": ConfigAccessor(
                getter=self._get_download_dir,
                setter=self._set_download_dir,
            ),
        }

    def _get_download_dir(self) -> str:
        client = self._get_client()
        try:
            return client.get_session().download_dir
        except TransmissionError as e:
            raise CommunicationError(f"{self.name}: {e}") from e

    def _set_download_dir(self, value: str) -> None:
        if not value:
            raise ValueError("empty download dir")
        self._set_session(download_dir=value)

    def _set_session(self, **kwargs: Any) -> None:
        client = self._get_client()
        with self._lock:
            try:
                client.set_session(**kwargs)
            except TransmissionError as e:
                _L.error(f"{self.name}: failed to set session: {e}")
                raise CommunicationError(f"{self.name}: {e}") from e


def _to_kib(limit: int) -> int:
    return max(limit // 1024, 1)


def _to_limit_kwargs(option: TorrentOption) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if option.download_speed_limit is not None:
        if option.download_speed_limit > 0:
            kwargs["download_limit"] = _to_kib(option.download_speed_limit)
            kwargs["download_limited"] = True
        else:
            kwargs["download_limited"] = False
    if option.upload_speed_limit is not None:
        if option.upload_speed_limit > 0:
            kwargs["upload_limit"] = _to_kib(option.upload_speed_limit)
            kwargs["upload_limited"] = True
        else:
            kwargs["upload_limited"] = False
    return kwargs


def _to_labels(category: str, tags: Iterable[str]) -> list[str]:
    labels = [_ for _ in tags if not _.startswith(CATEGORY_LABEL_PREFIX)]
    if category:
        labels.insert(0, CATEGORY_LABEL_PREFIX + category)
    return labels


def _split_labels(labels: Iterable[str]) -> tuple[str, tuple[str, ...]]:
    category = ""
    tags: list[str] = []
    for label in labels:
        if label.startswith(CATEGORY_LABEL_PREFIX):
            if not category:
                category = label[len(CATEGORY_LABEL_PREFIX) :]
            continue
        tags.append(label)
    return category, tuple(tags)


def _map_state(status: int, percent_done: float) -> TorrentState:
    if status in _SEED_STATES:
        return TorrentState.SEEDING
    if status in _DOWNLOAD_STATES:
        return TorrentState.DOWNLOADING
    if status == _STOPPED and percent_done >= 1:
        return TorrentState.COMPLETED
    return TorrentState.PAUSED


def _convert_torrent(torrent: RpcTorrent) -> Torrent:
    """Convert Transmission Torrent to common Torrent"""
    fields: dict[str, Any] = torrent.fields
    name, meta = parse_meta_from_name(fields["name"])
    category, tags = _split_labels(fields.get("labels") or [])

    tracker_stats = fields.get("trackerStats") or []
    tracker = tracker_stats[0] if tracker_stats else {}
    size = fields.get("sizeWhenDone", 0)
    size_completed = max(size - fields.get("leftUntilDone", 0), 0)
    done_date = fields.get("doneDate", 0)

    return Torrent(
        info_hash=fields["hashString"],
        name=name,
        state=_map_state(fields.get("status", _STOPPED), fields.get("percentDone", 0)),
        tracker_domain=urlparse(tracker.get("announce", "")).hostname or "",
        atime=fields.get("addedDate", 0),
        ctime=done_date if done_date > 0 and size_completed >= size else 0,
        category=category,
        tags=tags,
        downloaded=fields.get("downloadedEver", 0),
        download_speed=fields.get("rateDownload", 0),
        download_speed_limit=(
            fields.get("downloadLimit", 0) * 1024
            if fields.get("downloadLimited")
            else -1
        ),
        uploaded=fields.get("uploadedEver", 0),
        upload_speed=fields.get("rateUpload", 0),
        uploaded_speed_limit=(
            fields.get("uploadLimit", 0) * 1024 if fields.get("uploadLimited") else -1
        ),
        size=size,
        size_completed=size_completed,
        seeders=tracker.get("seederCount", -1),
        leechers=tracker.get("leecherCount", -1),
        meta=meta or {},
        save_path=fields.get("downloadDir", ""),
        content_path=f"{fields.get('downloadDir', '').rstrip('/')}/{fields['name']}",
    )


REG_INFO = RegInfo(name="transmission", creator=TransmissionClient)
