from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Tuple

from . import config
from .errors import ConfigParseError

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("hostname", "secret", "interval", "count", "maxrows")


@dataclass(frozen=True)
class Target:
    name: str


@dataclass(frozen=True)
class Host:
    hostname: str
    secret: str = field(repr=False)
    interval: float  # seconds
    count: int
    max_rows: int
    targets: Tuple[Target, ...] = ()
    id: Optional[int] = None  # worksheet id, None until the worksheet exists


def _text(value: object) -> str:
    return "" if value is None else str(value).strip()


def _required(row: Mapping[str, object], key: str) -> str:
    value = _text(row.get(key))
    if not value:
        raise ConfigParseError(f"host is missing `{key.upper()}`")
    return value


def _number(row: Mapping[str, object], key: str, minimum: int) -> int:
    raw = _required(row, key)
    try:
        value = int(raw)
    except ValueError:
        raise ConfigParseError(f"`{key.upper()}` must be number, got {raw!r}") from None
    if value < minimum:
        raise ConfigParseError(f"`{key.upper()}` must be at least {minimum}, got {value}")
    return value


def build_targets(row: Mapping[str, object]) -> Tuple[Target, ...]:
    """Collect targets from every ``target_*`` column, in column order."""
    targets = []
    for key, value in row.items():
        if not str(key).lower().startswith(config.TARGET_KEY_PREFIX):
            continue
        name = _text(value)
        if name:
            targets.append(Target(name))
    return tuple(targets)


def build_host(row: Mapping[str, object]) -> Host:
    """Build a Host from one config row. Raises ConfigParseError."""
    row = {str(k).lower(): v for k, v in row.items()}
    return Host(
        hostname=_required(row, "hostname"),
        secret=_required(row, "secret"),
        interval=float(_number(row, "interval", 1)),
        count=_number(row, "count", 1),
        max_rows=_number(row, "maxrows", 0),
        targets=build_targets(row),
    )


class HostRegistry:
    """Hosts built from the config worksheet, rebuilt wholesale on each pull."""

    def __init__(self) -> None:
        self._hosts: List[Host] = []

    def __len__(self) -> int:
        return len(self._hosts)

    def __iter__(self):
        return iter(self._hosts)

    def build_hosts(self, rows: Iterable[Mapping[str, object]]) -> int:
        hosts: List[Host] = []
        # Sheet row numbers: the header is row 1
        for row_num, row in enumerate(rows, start=2):
            try:
                hosts.append(build_host(row))
            except ConfigParseError as err:
                log.error("Error building host on row %d: %s", row_num, err)
        self._hosts = hosts
        log.debug("Built %d hosts", len(hosts))
        return len(hosts)

    def authenticate(self, hostname: str, secret: str) -> Optional[Host]:
        for host in self._hosts:
            if host.hostname == hostname and host.secret == secret:
                return host
        return None
