import json
from pathlib import Path

from utils.timestamp import parse_timestamp

_DEFAULT_CONFIG = Path(__file__).parent / "config.json"


class GeneratorConfig:
    __slots__ = ("start_time", "machine_id")

    def __init__(self, start_time="2024-01-01T00:00:00Z", machine_id=None):
        self.start_time = start_time
        self.machine_id = machine_id

    @property
    def start_datetime(self):
        return parse_timestamp(self.start_time)


class ServerConfig:
    __slots__ = ("host", "port", "domain")

    def __init__(self, host="127.0.0.1", port=8080, domain="http://localhost:8080"):
        self.host = host
        self.port = port
        self.domain = domain


class LoggingConfig:
    __slots__ = ("level", "file", "crash_file")

    def __init__(self, level="INFO", file="logs/audit.log", crash_file="logs/crash.log"):
        self.level = level
        self.file = file
        self.crash_file = crash_file


class Config:
    __slots__ = ("generator", "server", "logging")

    def __init__(self, generator=None, server=None, logging=None):
        self.generator = generator or GeneratorConfig()
        self.server = server or ServerConfig()
        self.logging = logging or LoggingConfig()

    @classmethod
    def from_dict(cls, d):
        return cls(
            GeneratorConfig(**d.get("generator", {})),
            ServerConfig(**d.get("server", {})),
            LoggingConfig(**d.get("logging", {})),
        )


def load_config(path=None):
    config_path = Path(path) if path else _DEFAULT_CONFIG

    if not config_path.exists():
        return Config()

    with open(config_path) as file:
        return Config.from_dict(json.load(file))
