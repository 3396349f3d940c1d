"""Shared test fixtures and dummy classes."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping

import pytest

from torrentctl.settings import ClientData, Data, Settings
from torrentctl.torrent.client import TorrentClient, filter_torrents
from torrentctl.torrent.types import Status, Torrent, TorrentOption, TorrentState


class DummyClient(TorrentClient):
    """In-memory client for testing."""

    def __init__(self, name: str, config: ClientData, global_config: Data) -> None:
        super().__init__(name, config, global_config)
        self.torrents: list[Torrent] = []
        self.fetch_count = 0
        self.download_limit = 0
        self.upload_limit = 0
        self.free_space = -1

    def _fetch(self) -> list[Torrent]:
        self.fetch_count += 1
        return list(self.torrents)

    def get_torrents(
        self, state: str = "", category: str = "", show_all: bool = False
    ) -> list[Torrent]:
        torrents = self._get_cached_torrents(self._fetch)
        return filter_torrents(torrents, state, category, show_all)

    def add_torrent(
        self,
        content: bytes,
        option: TorrentOption | None = None,
        meta: Mapping[str, int] | None = None,
    ) -> None:
        raise NotImplementedError

    def modify_torrent(
        self,
        info_hash: str,
        option: TorrentOption,
        meta: Mapping[str, int] | None = None,
    ) -> None:
        raise NotImplementedError

    def delete_torrents(self, info_hashes: Iterable[str], delete_files: bool) -> None:
        raise NotImplementedError

    def get_status(self) -> Status:
        return Status(
            free_space_on_disk=self.free_space,
            download_speed_limit=self.download_limit,
            upload_speed_limit=self.upload_limit,
            no_add=self._compute_no_add(self.free_space),
        )

    def set_download_speed_limit(self, limit: int) -> None:
        self.download_limit = limit

    def set_upload_speed_limit(self, limit: int) -> None:
        self.upload_limit = limit


def make_torrent(
    info_hash: str = "a" * 40,
    name: str = "foo",
    state: TorrentState = TorrentState.SEEDING,
    **kwargs,
) -> Torrent:
    return Torrent(info_hash=info_hash, name=name, state=state, **kwargs)


def make_torrent_content(name: str = "foo") -> tuple[bytes, str]:
    """Build a minimal single file .torrent, returns content and info hash."""
    encoded_name = name.encode("utf-8")
    info = (
        b"d6:lengthi1e4:name"
        + str(len(encoded_name)).encode()
        + b":"
        + encoded_name
        + b"12:piece lengthi16384e6:pieces20:"
        + b"\x01" * 20
        + b"e"
    )
    content = b"d8:announce31:http://tracker.example/announce4:info" + info + b"e"
    return content, hashlib.sha1(info).hexdigest()


@pytest.fixture
def client_data() -> ClientData:
    return ClientData(name="local", type="dummy", cache_ttl=0)


@pytest.fixture
def global_data(client_data: ClientData) -> Data:
    return Data(clients=[client_data])


@pytest.fixture
def settings(global_data: Data) -> Settings:
    return Settings(global_data)


@pytest.fixture
def dummy_client(client_data: ClientData, global_data: Data) -> DummyClient:
    return DummyClient("local", client_data, global_data)
