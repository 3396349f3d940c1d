from dataclasses import dataclass, field

import dacite
import yaml


@dataclass
class ClientData:
    """One configured client instance"""

    name: str
    type: str
    host: str = "localhost"
    port: int | None = None
    username: str | None = None
    password: str | None = None
    download_dir: str | None = None
    # if true, automated tasks will NOT add any torrents to this client
    no_add: bool = False
    # bytes, report no_add when free space drops below this
    min_disk_space: int = 0
    # seconds, 0 disables the torrent list cache
    cache_ttl: int = 5


@dataclass
class Data:
    log_path: str | None = None
    # transport timeout in seconds
    timeout: int = 30
    clients: list[ClientData] = field(default_factory=list)


class Settings:
    """Read-only view over loaded settings"""

    def __init__(self, data: Data) -> None:
        seen = set[str]()
        for client in data.clients:
            if client.name in seen:
                raise ValueError(f"duplicated client name: {client.name}")
            seen.add(client.name)
        self._data = data

    def get(self) -> Data:
        return self._data

    def get_client_config(self, name: str) -> ClientData | None:
        for client in self._data.clients:
            if client.name == name:
                return client
        return None

    def get_client_names(self) -> list[str]:
        return [client.name for client in self._data.clients]


def load_from_dict(raw_data: dict) -> Settings:
    data = dacite.from_dict(Data, raw_data, config=dacite.Config(strict=True))
    return Settings(data)


def load_from_path(path: str) -> Settings:
    with open(path, mode="r", encoding="utf-8") as fin:
        raw_data = yaml.safe_load(fin)
    if not raw_data:
        raw_data = {}
    return load_from_dict(raw_data)
