#
# elector: a kubernetes leader election helper
# Copyright (C) 2026  The elector authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>
#

import dataclasses
import math
import re
import typing
import urllib.parse

DEFAULT_NAMESPACE = "default"
DEFAULT_TTL = 10.0
DEFAULT_TIMEOUT = 10.0

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration string into a number of seconds.
    Accepts the compact unit suffixed form used by many cluster tools
    (eg. "10s", "1m30s", "250ms") as well as a plain number of seconds.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid duration: {value!r}")
        return seconds
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return sign * total


def parse_address(value: str) -> typing.Tuple[str, int]:
    """Split a host:port style bind address. The host part may be empty
    (all interfaces) or a bracketed IPv6 address.
    """
    host, sep, port = value.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address: {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        portnum = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address: {value!r}") from None
    if not 0 <= portnum <= 65535:
        raise ValueError(f"port out of range in address: {value!r}")
    return host, portnum


def check_webhook_url(value: str) -> str:
    """Return the webhook URL if it is an absolute http(s) URL."""
    parts = urllib.parse.urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"webhook must be an absolute http(s) URL: {value!r}")
    return value


@dataclasses.dataclass(frozen=True)
class ElectionConfig:
    """Describes one election and this process' place in it."""

    name: str
    identity: str
    namespace: str = DEFAULT_NAMESPACE
    ttl: float = DEFAULT_TTL

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("election name can not be empty")
        if not self.identity:
            raise ValueError("participant id can not be empty")
        if not self.namespace:
            raise ValueError("election namespace can not be empty")
        if self.ttl <= 0:
            raise ValueError(f"ttl must be positive, not {self.ttl}")


@dataclasses.dataclass(frozen=True)
class ElectorConfig:
    election: ElectionConfig
    http_address: str = ""
    webhook: str = ""
    use_cluster_credentials: bool = False
    kubeconfig: str = ""
    context: str = ""
    webhook_timeout: float = DEFAULT_TIMEOUT
    request_timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if self.http_address:
            parse_address(self.http_address)
        if self.webhook:
            check_webhook_url(self.webhook)
        if self.webhook_timeout <= 0:
            raise ValueError("webhook timeout must be positive")
        if self.request_timeout <= 0:
            raise ValueError("request timeout must be positive")

    @property
    def identity(self) -> str:
        return self.election.identity

    @property
    def namespace(self) -> str:
        return self.election.namespace
