import logging
import sys
from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser, Namespace
from pathlib import Path

from wcpan.logging import ConfigBuilder

from .settings import Settings, load_from_path
from .torrent import (
    TorrentClient,
    TorrentClientError,
    TorrentClientRegistry,
    TorrentOption,
    create_client,
    create_torrent_registry,
    print_torrents,
)
from .util import bytes_size


_L = logging.getLogger(__name__)


class Shell:
    def __init__(
        self, args: list[str], *, registry: TorrentClientRegistry | None = None
    ) -> None:
        from logging.config import dictConfig

        self._kwargs = _parse_args(args)
        self._cfg = load_from_path(self._kwargs.settings)
        dictConfig(
            ConfigBuilder(path=self._cfg.get().log_path, rotate=True)
            .add("torrentctl", level="D" if self._kwargs.verbose else "I")
            .to_dict()
        )
        self._registry = registry or create_torrent_registry()

    def __call__(self) -> int:
        try:
            return self._kwargs.action(self)
        except TorrentClientError as e:
            _L.error(f"{e}")
        except Exception:
            _L.exception("main function error")
        return 1

    @property
    def settings(self) -> Settings:
        return self._cfg

    def create_client(self, name: str) -> TorrentClient:
        return create_client(name, registry=self._registry, settings=self._cfg)

    def clients(self) -> int:
        for name in self._cfg.get_client_names():
            config = self._cfg.get_client_config(name)
            assert config
            print(f"{name}\t{config.type}")
        return 0

    def list_torrents(self) -> int:
        kwargs = self._kwargs
        client = self.create_client(kwargs.client)
        torrents = client.get_torrents(
            state=kwargs.state, category=kwargs.category, show_all=kwargs.all
        )
        print_torrents(torrents, kwargs.filter)
        return 0

    def status(self) -> int:
        client = self.create_client(self._kwargs.client)
        status = client.get_status()
        free_space = (
            bytes_size(status.free_space_on_disk)
            if status.free_space_on_disk >= 0
            else "unknown"
        )
        print(f"free space: {free_space}")
        print(
            f"download: {bytes_size(status.download_speed)}/s"
            f" (limit {_limit_text(status.download_speed_limit)})"
        )
        print(
            f"upload: {bytes_size(status.upload_speed)}/s"
            f" (limit {_limit_text(status.upload_speed_limit)})"
        )
        print(f"no add: {status.no_add}")
        return 0

    def add(self) -> int:
        kwargs = self._kwargs
        meta = _parse_meta_args(kwargs.meta)
        option = TorrentOption(
            category=kwargs.category,
            tags=tuple(kwargs.tag) if kwargs.tag else None,
            paused=True if kwargs.paused else None,
        )
        client = self.create_client(kwargs.client)
        rv = 0
        for path in kwargs.files:
            content = Path(path).read_bytes()
            try:
                client.add_torrent(content, option, meta)
            except TorrentClientError as e:
                _L.error(f"{path}: {e}")
                rv = 1
        return rv

    def delete(self) -> int:
        kwargs = self._kwargs
        client = self.create_client(kwargs.client)
        client.delete_torrents(kwargs.hashes, kwargs.delete_files)
        return 0

    def get_config(self) -> int:
        kwargs = self._kwargs
        client = self.create_client(kwargs.client)
        print(client.get_config(kwargs.variable))
        return 0

    def set_config(self) -> int:
        kwargs = self._kwargs
        client = self.create_client(kwargs.client)
        client.set_config(kwargs.variable, kwargs.value)
        return 0


def main(args: list[str] | None = None) -> int:
    shell = Shell(sys.argv if args is None else args)
    return shell()


def _limit_text(limit: int) -> str:
    if limit <= 0:
        return "none"
    return f"{bytes_size(limit)}/s"


def _parse_meta_args(items: list[str] | None) -> dict[str, int]:
    meta: dict[str, int] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"invalid meta: {item}")
        meta[key] = int(value)
    return meta


def _parse_args(args: list[str]) -> Namespace:
    parser = ArgumentParser(
        prog="torrentctl", formatter_class=ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "-s",
        "--settings",
        type=str,
        default="torrentctl.yaml",
        help="settings file name",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    sub = commands.add_parser("clients", help="list configured clients")
    sub.set_defaults(action=Shell.clients)

    sub = commands.add_parser("list", help="list torrents")
    sub.add_argument("client", type=str)
    sub.add_argument("--state", type=str, default="")
    sub.add_argument("--category", type=str, default="")
    sub.add_argument("--all", action="store_true", help="include archived")
    sub.add_argument("--filter", type=str, default="", help="name or hash")
    sub.set_defaults(action=Shell.list_torrents)

    sub = commands.add_parser("status", help="show client status")
    sub.add_argument("client", type=str)
    sub.set_defaults(action=Shell.status)

    sub = commands.add_parser("add", help="add torrent files")
    sub.add_argument("client", type=str)
    sub.add_argument("files", type=str, nargs="+")
    sub.add_argument("--category", type=str, default=None)
    sub.add_argument("--tag", type=str, action="append")
    sub.add_argument("--paused", action="store_true")
    sub.add_argument("--meta", type=str, action="append", help="key=value")
    sub.set_defaults(action=Shell.add)

    sub = commands.add_parser("delete", help="delete torrents")
    sub.add_argument("client", type=str)
    sub.add_argument("hashes", type=str, nargs="+")
    sub.add_argument("--delete-files", action="store_true")
    sub.set_defaults(action=Shell.delete)

    sub = commands.add_parser("get-config", help="read a client variable")
    sub.add_argument("client", type=str)
    sub.add_argument("variable", type=str)
    sub.set_defaults(action=Shell.get_config)

    sub = commands.add_parser("set-config", help="write a client variable")
    sub.add_argument("client", type=str)
    sub.add_argument("variable", type=str)
    sub.add_argument("value", type=str)
    sub.set_defaults(action=Shell.set_config)

    kwargs = parser.parse_args(args[1:])
    return kwargs
