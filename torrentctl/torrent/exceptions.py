from collections.abc import Mapping


class TorrentClientError(Exception):
    pass


class ClientTypeNotFoundError(TorrentClientError, LookupError):
    def __init__(self, client_type: str) -> None:
        super().__init__(f"didn't find client type {client_type!r}")
        self.client_type = client_type


class DuplicateClientTypeError(TorrentClientError):
    def __init__(self, client_type: str) -> None:
        super().__init__(f"client type {client_type!r} is already registered")
        self.client_type = client_type


class ClientConfigNotFoundError(TorrentClientError, LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"client {name} not existed")
        self.name = name


class UnsupportedClientTypeError(TorrentClientError):
    def __init__(self, client_type: str) -> None:
        super().__init__(f"unsupported client type {client_type}")
        self.client_type = client_type


class CommunicationError(TorrentClientError):
    """The backend could not be reached or returned garbage."""


class DuplicateTorrentError(TorrentClientError):
    def __init__(self, info_hash: str) -> None:
        super().__init__(f"torrent {info_hash} already exists")
        self.info_hash = info_hash


class UnknownVariableError(TorrentClientError, KeyError):
    def __init__(self, variable: str) -> None:
        super().__init__(f"unknown config variable {variable!r}")
        self.variable = variable

    def __str__(self) -> str:
        return self.args[0]


class InvalidValueError(TorrentClientError, ValueError):
    def __init__(self, variable: str, value: str) -> None:
        super().__init__(f"invalid value {value!r} for {variable}")
        self.variable = variable
        self.value = value


class DeleteTorrentsError(TorrentClientError):
    """
    Raised after a batch delete finished with some items failing.

    Torrents not listed in `failures` were removed.
    """

    def __init__(self, failures: Mapping[str, Exception]) -> None:
        detail = ", ".join(f"{h}: {e}" for h, e in failures.items())
        super().__init__(f"failed to delete {len(failures)} torrent(s): {detail}")
        self.failures = dict(failures)


class TorrentNotFoundError(TorrentClientError, LookupError):
    def __init__(self, info_hash: str) -> None:
        super().__init__(f"no such torrent {info_hash}")
        self.info_hash = info_hash


class InvalidTorrentError(TorrentClientError, ValueError):
    pass
