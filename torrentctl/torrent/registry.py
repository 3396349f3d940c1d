import logging
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Protocol, TypeAlias

from ..settings import ClientData, Data
from .client import TorrentClient
from .exceptions import (
    ClientConfigNotFoundError,
    ClientTypeNotFoundError,
    DuplicateClientTypeError,
    UnsupportedClientTypeError,
)


ClientCreator: TypeAlias = Callable[[str, ClientData, Data], TorrentClient]


_L = logging.getLogger(__name__)


class ConfigSource(Protocol):
    def get_client_config(self, name: str) -> ClientData | None: ...

    def get(self) -> Data: ...


@dataclass(frozen=True)
class RegInfo:
    name: str
    creator: ClientCreator


class TorrentClientRegistry:
    """
    Maps a client type name to the factory building clients of that type.

    Fill it once during startup, it is only read afterwards.
    """

    def __init__(self) -> None:
        self._entries: list[RegInfo] = []
        self._lock = Lock()

    def register(self, reg_info: RegInfo) -> None:
        """Register a client type, names must be unique"""
        with self._lock:
            if any(_.name == reg_info.name for _ in self._entries):
                raise DuplicateClientTypeError(reg_info.name)
            self._entries.append(reg_info)
        _L.debug(f"registered torrent client type: {reg_info.name}")

    def find(self, name: str) -> RegInfo:
        for item in self._entries:
            if item.name == name:
                return item
        raise ClientTypeNotFoundError(name)

    def get_all_types(self) -> list[str]:
        return [_.name for _ in self._entries]


def client_exists(name: str, *, settings: ConfigSource) -> bool:
    return settings.get_client_config(name) is not None


def create_client(
    name: str, *, registry: TorrentClientRegistry, settings: ConfigSource
) -> TorrentClient:
    """
    Build the client instance configured as `name`.

    Errors raised by the type's creator are passed through unchanged.
    """
    client_config = settings.get_client_config(name)
    if client_config is None:
        raise ClientConfigNotFoundError(name)
    try:
        reg_info = registry.find(client_config.type)
    except ClientTypeNotFoundError as e:
        raise UnsupportedClientTypeError(client_config.type) from e
    return reg_info.creator(name, client_config, settings.get())


def create_torrent_registry() -> TorrentClientRegistry:
    """Create a registry holding every built-in client type"""
    from .qbittorrent import REG_INFO as QBITTORRENT
    from .transmission import REG_INFO as TRANSMISSION

    registry = TorrentClientRegistry()
    registry.register(QBITTORRENT)
    registry.register(TRANSMISSION)
    return registry
