import pytest
from conftest import make_torrent_content

from torrentctl.torrent.exceptions import InvalidTorrentError
from torrentctl.torrent.metainfo import read_metainfo


def test_read_metainfo():
    content, info_hash = make_torrent_content("Some.Show")
    info = read_metainfo(content)
    assert info.info_hash == info_hash
    assert info.name == "Some.Show"


def test_read_garbage():
    with pytest.raises(InvalidTorrentError):
        read_metainfo(b"not a torrent")
