"""
Torrent client package for supporting multiple torrent clients.

This package provides:
- Abstract torrent client interface and its data model
- Metadata encoding in torrent names
- Client registry for creating configured clients by name
- Transmission and qBittorrent client implementations
- Display helpers
"""

from .client import ConfigVariable, TorrentClient, filter_torrents
from .exceptions import (
    ClientConfigNotFoundError,
    ClientTypeNotFoundError,
    CommunicationError,
    DeleteTorrentsError,
    DuplicateClientTypeError,
    DuplicateTorrentError,
    InvalidTorrentError,
    InvalidValueError,
    TorrentClientError,
    TorrentNotFoundError,
    UnknownVariableError,
    UnsupportedClientTypeError,
)
from .meta import generate_name_with_meta, merge_meta, parse_meta_from_name
from .qbittorrent import QbittorrentClient
from .registry import (
    ClientCreator,
    ConfigSource,
    RegInfo,
    TorrentClientRegistry,
    client_exists,
    create_client,
    create_torrent_registry,
)
from .transmission import TransmissionClient
from .types import Status, Torrent, TorrentOption, TorrentState
from .view import (
    generate_torrent_tag_from_site,
    get_site_from_tag,
    print_torrents,
    torrent_state_icon_text,
)


__all__ = [
    # Core interfaces and models
    "ConfigVariable",
    "Status",
    "Torrent",
    "TorrentClient",
    "TorrentOption",
    "TorrentState",
    "filter_torrents",
    # Client implementations
    "QbittorrentClient",
    "TransmissionClient",
    # Registry and factory functions
    "ClientCreator",
    "ConfigSource",
    "RegInfo",
    "TorrentClientRegistry",
    "client_exists",
    "create_client",
    "create_torrent_registry",
    # Metadata
    "generate_name_with_meta",
    "merge_meta",
    "parse_meta_from_name",
    # Display
    "generate_torrent_tag_from_site",
    "get_site_from_tag",
    "print_torrents",
    "torrent_state_icon_text",
    # Errors
    "ClientConfigNotFoundError",
    "ClientTypeNotFoundError",
    "CommunicationError",
    "DeleteTorrentsError",
    "DuplicateClientTypeError",
    "DuplicateTorrentError",
    "InvalidTorrentError",
    "InvalidValueError",
    "TorrentClientError",
    "TorrentNotFoundError",
    "UnknownVariableError",
    "UnsupportedClientTypeError",
]
