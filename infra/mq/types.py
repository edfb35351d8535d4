import re
from dataclasses import dataclass
from enum import Enum

_CONNNAME = re.compile(r"^\s*([^()\s]+)\s*\(\s*(\d+)\s*\)\s*$")


def parse_connname(connname: str) -> tuple[str, int]:
    """Split an MQ ``host(port)`` connection name."""
    match = _CONNNAME.match(connname)
    if match is None:
        raise ValueError(f"connection name must look like host(port): {connname!r}")
    port = int(match.group(2))
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in connection name: {connname!r}")
    return match.group(1), port


class OpenMode(str, Enum):
    """Fixed for the lifetime of a queue handle."""
    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input+output"

    @property
    def can_receive(self) -> bool:
        return self in (OpenMode.INPUT, OpenMode.INPUT_OUTPUT)

    @property
    def can_publish(self) -> bool:
        return self in (OpenMode.OUTPUT, OpenMode.INPUT_OUTPUT)


@dataclass(frozen=True)
class BrokerTarget:
    """Queue manager, channel and ``host(port)`` endpoint."""
    queue_manager: str
    channel: str
    conn_name: str

    @property
    def host(self) -> str:
        return parse_connname(self.conn_name)[0]

    @property
    def port(self) -> int:
        return parse_connname(self.conn_name)[1]


@dataclass(frozen=True)
class Credentials:
    user: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(user={self.user!r}, password='***')"
