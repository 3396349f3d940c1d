from unittest.mock import MagicMock

import pytest

from torrentctl.settings import ClientData, Data, Settings
from torrentctl.torrent import QbittorrentClient, TransmissionClient
from torrentctl.torrent.exceptions import (
    ClientConfigNotFoundError,
    ClientTypeNotFoundError,
    CommunicationError,
    DuplicateClientTypeError,
    UnsupportedClientTypeError,
)
from torrentctl.torrent.registry import (
    RegInfo,
    TorrentClientRegistry,
    client_exists,
    create_client,
    create_torrent_registry,
)


def test_find_registered():
    creator = MagicMock()
    registry = TorrentClientRegistry()
    registry.register(RegInfo(name="X", creator=creator))

    assert registry.find("X").creator is creator
    with pytest.raises(ClientTypeNotFoundError):
        registry.find("Y")


def test_duplicate_registration_is_rejected():
    registry = TorrentClientRegistry()
    first = MagicMock()
    registry.register(RegInfo(name="X", creator=first))

    with pytest.raises(DuplicateClientTypeError):
        registry.register(RegInfo(name="X", creator=MagicMock()))
    assert registry.find("X").creator is first
    assert registry.get_all_types() == ["X"]


def test_client_exists():
    settings = Settings(Data(clients=[ClientData(name="inst", type="X")]))
    assert client_exists("inst", settings=settings)
    assert not client_exists("other", settings=settings)


def test_create_client_invokes_creator():
    inst_config = ClientData(name="inst", type="X")
    global_config = Data(clients=[inst_config])
    settings = Settings(global_config)
    sentinel = object()
    creator = MagicMock(return_value=sentinel)
    registry = TorrentClientRegistry()
    registry.register(RegInfo(name="X", creator=creator))

    rv = create_client("inst", registry=registry, settings=settings)

    assert rv is sentinel
    creator.assert_called_once_with("inst", inst_config, global_config)


def test_create_client_passes_creator_error_through():
    settings = Settings(Data(clients=[ClientData(name="inst", type="X")]))
    error = CommunicationError("boom")
    registry = TorrentClientRegistry()
    registry.register(RegInfo(name="X", creator=MagicMock(side_effect=error)))

    with pytest.raises(CommunicationError) as e:
        create_client("inst", registry=registry, settings=settings)
    assert e.value is error


def test_create_client_missing_config():
    settings = Settings(Data())
    with pytest.raises(ClientConfigNotFoundError):
        create_client("inst", registry=TorrentClientRegistry(), settings=settings)


def test_create_client_unsupported_type():
    settings = Settings(Data(clients=[ClientData(name="inst", type="nope")]))
    with pytest.raises(UnsupportedClientTypeError):
        create_client("inst", registry=TorrentClientRegistry(), settings=settings)


def test_builtin_registry():
    registry = create_torrent_registry()
    assert sorted(registry.get_all_types()) == ["qbittorrent", "transmission"]

    settings = Settings(
        Data(
            clients=[
                ClientData(name="qb", type="qbittorrent"),
                ClientData(name="tr", type="transmission"),
            ]
        )
    )
    # connections are opened lazily
    qb = create_client("qb", registry=registry, settings=settings)
    tr = create_client("tr", registry=registry, settings=settings)
    assert isinstance(qb, QbittorrentClient)
    assert isinstance(tr, TransmissionClient)
    assert qb.get_name() == "qb"
    assert tr.get_client_config() is settings.get_client_config("tr")
