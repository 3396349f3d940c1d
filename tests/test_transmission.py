from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from conftest import make_torrent_content
from transmission_rpc import TransmissionError

from torrentctl.settings import ClientData, Data
from torrentctl.torrent.exceptions import (
    CommunicationError,
    DeleteTorrentsError,
    DuplicateTorrentError,
    TorrentNotFoundError,
)
from torrentctl.torrent.transmission import TransmissionClient
from torrentctl.torrent.types import TorrentOption, TorrentState


def _rpc_torrent(**kwargs):
    fields = {
        "id": 7,
        "hashString": "c" * 40,
        "name": "foo__meta.dl_3600",
        "status": 6,
        "percentDone": 1.0,
        "addedDate": 1000,
        "doneDate": 2000,
        "labels": ["category:movie", "site:example"],
        "downloadedEver": 100,
        "uploadedEver": 50,
        "rateDownload": 0,
        "rateUpload": 10,
        "downloadLimit": 100,
        "downloadLimited": False,
        "uploadLimit": 2,
        "uploadLimited": True,
        "sizeWhenDone": 100,
        "leftUntilDone": 0,
        "trackerStats": [
            {
                "announce": "http://tracker.example/announce",
                "seederCount": 5,
                "leecherCount": 1,
            }
        ],
        "downloadDir": "/downloads",
    }
    fields.update(kwargs)
    return SimpleNamespace(fields=fields)


@pytest.fixture
def rpc():
    rpc = MagicMock()
    rpc.get_torrents.return_value = []
    rpc.add_torrent.return_value = SimpleNamespace(id=9)
    return rpc


@pytest.fixture
def tr(rpc):
    config = ClientData(name="tr", type="transmission", cache_ttl=0)
    client = TransmissionClient("tr", config, Data(clients=[config]))
    client._client = rpc
    return client


def test_get_torrents(tr, rpc):
    rpc.get_torrents.return_value = [
        _rpc_torrent(),
        _rpc_torrent(
            hashString="d" * 40,
            name="bar",
            status=4,
            percentDone=0.5,
            leftUntilDone=50,
            labels=[],
            trackerStats=[],
        ),
    ]

    torrents = tr.get_torrents()

    t = torrents[0]
    assert t.name == "foo"
    assert t.meta == {"dl": 3600}
    assert t.state == TorrentState.SEEDING
    assert t.category == "movie"
    assert t.tags == ("site:example",)
    assert t.tracker_domain == "tracker.example"
    assert t.ctime == 2000
    assert t.download_speed_limit == -1
    assert t.uploaded_speed_limit == 2048
    assert t.seeders == 5
    assert t.content_path == "/downloads/foo__meta.dl_3600"

    t = torrents[1]
    assert t.state == TorrentState.DOWNLOADING
    assert t.size_completed == 50
    assert t.ctime == 0
    assert t.tracker_domain == ""
    assert t.seeders == -1


def test_stopped_states(tr, rpc):
    rpc.get_torrents.return_value = [
        _rpc_torrent(status=0, percentDone=1.0),
        _rpc_torrent(hashString="d" * 40, status=0, percentDone=0.2),
    ]
    torrents = tr.get_torrents(show_all=True)
    assert [t.state for t in torrents] == [
        TorrentState.COMPLETED,
        TorrentState.PAUSED,
    ]


def test_get_torrents_communication_error(tr, rpc):
    rpc.get_torrents.side_effect = TransmissionError("timeout")
    with pytest.raises(CommunicationError):
        tr.get_torrents()


def test_add_torrent(tr, rpc):
    content, info_hash = make_torrent_content("foo")
    option = TorrentOption(
        category="tv", tags=("site:example",), paused=True, download_speed_limit=4096
    )

    tr.add_torrent(content, option, {"dl": 3600})

    rpc.get_torrents.assert_called_once_with(ids=[info_hash], arguments=["id"])
    rpc.add_torrent.assert_called_once_with(
        content, labels=["category:tv", "site:example"], paused=True
    )
    rpc.rename_torrent_path.assert_called_once_with(
        9, location="foo", name="foo__meta.dl_3600"
    )
    rpc.change_torrent.assert_called_once_with(
        9, download_limit=4, download_limited=True
    )


def test_add_duplicate_torrent(tr, rpc):
    content, _ = make_torrent_content("foo")
    rpc.get_torrents.return_value = [_rpc_torrent()]
    with pytest.raises(DuplicateTorrentError):
        tr.add_torrent(content)
    rpc.add_torrent.assert_not_called()


def test_modify_torrent(tr, rpc):
    rpc.get_torrents.return_value = [_rpc_torrent()]

    tr.modify_torrent(
        "c" * 40, TorrentOption(category="tv", upload_speed_limit=0, paused=True)
    )

    rpc.rename_torrent_path.assert_not_called()
    rpc.change_torrent.assert_called_once_with(
        7, upload_limited=False, labels=["category:tv", "site:example"]
    )
    rpc.stop_torrent.assert_called_once_with(7)
    rpc.start_torrent.assert_not_called()


def test_modify_torrent_meta(tr, rpc):
    rpc.get_torrents.return_value = [_rpc_torrent()]

    tr.modify_torrent("c" * 40, TorrentOption(name="bar"), {"dl": 0, "rt": 1})

    rpc.rename_torrent_path.assert_called_once_with(
        7, location="foo__meta.dl_3600", name="bar__meta.rt_1"
    )
    rpc.change_torrent.assert_not_called()


def test_delete_torrents_aggregates_errors(tr, rpc):
    rpc.remove_torrent.side_effect = [None, TransmissionError("gone"), None]

    with pytest.raises(DeleteTorrentsError) as e:
        tr.delete_torrents(["a", "b", "c"], False)

    assert list(e.value.failures) == ["b"]
    rpc.remove_torrent.assert_any_call("c", delete_data=False)


def test_get_status(tr, rpc):
    rpc.get_session.return_value = SimpleNamespace(
        download_dir="/downloads",
        speed_limit_down=100,
        speed_limit_down_enabled=True,
        speed_limit_up=10,
        speed_limit_up_enabled=False,
    )
    rpc.session_stats.return_value = SimpleNamespace(
        download_speed=1, upload_speed=2
    )
    rpc.free_space.return_value = None

    status = tr.get_status()

    rpc.free_space.assert_called_once_with("/downloads")
    assert status.free_space_on_disk == -1
    assert status.download_speed_limit == 102400
    assert status.upload_speed_limit == 0
    assert not status.no_add


def test_config_variables(tr, rpc):
    tr.set_config("global_upload_speed_limit", "2048")
    rpc.set_session.assert_called_once_with(
        speed_limit_up=2, speed_limit_up_enabled=True
    )

    rpc.get_session.return_value = SimpleNamespace(download_dir="/downloads")
    assert tr.get_config("download_dir") == "/downloads"


def test_delete_torrents_keeps_going_after_invalid_hash(tr, rpc):
    def remove(info_hash, delete_data):
        if info_hash == "bad":
            raise ValueError(f"torrent ids {info_hash} is not valid torrent id")

    rpc.remove_torrent.side_effect = remove

    with pytest.raises(DeleteTorrentsError) as e:
        tr.delete_torrents(["c" * 40, "bad", "d" * 40], True)

    assert list(e.value.failures) == ["bad"]
    assert isinstance(e.value.failures["bad"], ValueError)
    rpc.remove_torrent.assert_any_call("d" * 40, delete_data=True)
    assert rpc.remove_torrent.call_count == 3


def test_modify_invalid_hash(tr, rpc):
    rpc.get_torrents.side_effect = ValueError("not valid torrent id")

    with pytest.raises(TorrentNotFoundError) as e:
        tr.modify_torrent("bad", TorrentOption(paused=True))

    assert e.value.info_hash == "bad"
    rpc.stop_torrent.assert_not_called()
