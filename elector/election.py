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
"""Leader election against the cluster API.

The lease is a JSON record kept in an annotation on an Endpoints object
named after the election. All participants read the record, the one
named in it renews it periodically and the others take it over when it
has not changed for a full lease duration. The record format matches
the one used by the Go client libraries for annotation based locks.

The Election object reports the leader as seen from this participant
by calling a function with the leader's identity (or an empty string
when no leader is known) each time that value changes.
"""

import dataclasses
import datetime
import http
import json
import logging
import math
import threading
import time
import typing

import kubernetes.client
from kubernetes.client.rest import ApiException

from .config import DEFAULT_TIMEOUT, ElectionConfig

_logger = logging.getLogger(__name__)

LEADER_ANNOTATION = "control-plane.alpha.kubernetes.io/leader"

TransitionFunc = typing.Callable[[str], None]


def _timestamp(when: typing.Optional[datetime.datetime] = None) -> str:
    when = when or datetime.datetime.now(datetime.timezone.utc)
    return when.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


@dataclasses.dataclass
class LeaderElectionRecord:
    holder_identity: str = ""
    lease_duration_seconds: int = 0
    acquire_time: str = ""
    renew_time: str = ""
    leader_transitions: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "holderIdentity": self.holder_identity,
                "leaseDurationSeconds": self.lease_duration_seconds,
                "acquireTime": self.acquire_time or None,
                "renewTime": self.renew_time or None,
                "leaderTransitions": self.leader_transitions,
            }
        )

    @classmethod
    def from_json(cls, data: str) -> "LeaderElectionRecord":
        try:
            raw = json.loads(data)
        except json.JSONDecodeError as err:
            raise ValueError(f"invalid leader election record: {err}")
        if not isinstance(raw, dict):
            raise ValueError("leader election record is not an object")
        try:
            return cls(
                holder_identity=str(raw.get("holderIdentity") or ""),
                lease_duration_seconds=int(
                    raw.get("leaseDurationSeconds") or 0
                ),
                acquire_time=str(raw.get("acquireTime") or ""),
                renew_time=str(raw.get("renewTime") or ""),
                leader_transitions=int(raw.get("leaderTransitions") or 0),
            )
        except TypeError as err:
            raise ValueError(f"invalid leader election record: {err}")


class EndpointsAPI(typing.Protocol):
    """Minimal protocol for the API calls used by the endpoints lock."""

    def read_namespaced_endpoints(
        self, name: str, namespace: str, **kwargs: typing.Any
    ) -> typing.Any:
        ...  # pragma: no cover

    def create_namespaced_endpoints(
        self, namespace: str, body: typing.Any, **kwargs: typing.Any
    ) -> typing.Any:
        ...  # pragma: no cover

    def replace_namespaced_endpoints(
        self, name: str, namespace: str, body: typing.Any, **kwargs: typing.Any
    ) -> typing.Any:
        ...  # pragma: no cover


class EndpointsLock:
    """Stores a leader election record in an annotation on an Endpoints
    object. Updates send back the object last read (or written), so a
    concurrent change by another participant makes the update fail with a
    conflict rather than silently overwrite it.
    """

    def __init__(
        self,
        api: EndpointsAPI,
        name: str,
        namespace: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api = api
        self.name = name
        self.namespace = namespace
        self.timeout = timeout
        self._obj: typing.Any = None

    def describe(self) -> str:
        return f"endpoints/{self.namespace}/{self.name}"

    def get(self) -> typing.Optional[LeaderElectionRecord]:
        """Return the current record, None if the lock object does not
        exist, or an empty record if the object has no record yet.
        """
        try:
            obj = self.api.read_namespaced_endpoints(
                self.name, self.namespace, _request_timeout=self.timeout
            )
        except ApiException as err:
            if err.status == http.HTTPStatus.NOT_FOUND:
                self._obj = None
                return None
            raise
        self._obj = obj
        annotations = getattr(obj.metadata, "annotations", None) or {}
        raw = annotations.get(LEADER_ANNOTATION)
        if not raw:
            return LeaderElectionRecord()
        return LeaderElectionRecord.from_json(raw)

    def create(self, record: LeaderElectionRecord) -> None:
        body = kubernetes.client.V1Endpoints(
            metadata=kubernetes.client.V1ObjectMeta(
                name=self.name,
                namespace=self.namespace,
                annotations={LEADER_ANNOTATION: record.to_json()},
            )
        )
        self._obj = self.api.create_namespaced_endpoints(
            self.namespace, body, _request_timeout=self.timeout
        )

    def update(self, record: LeaderElectionRecord) -> None:
        if self._obj is None:
            raise ValueError(f"{self.describe()} must be read before update")
        meta = self._obj.metadata
        annotations = dict(meta.annotations or {})
        annotations[LEADER_ANNOTATION] = record.to_json()
        meta.annotations = annotations
        self._obj = self.api.replace_namespaced_endpoints(
            self.name,
            self.namespace,
            self._obj,
            _request_timeout=self.timeout,
        )


class Election:
    """Participate in a named election.

    Timing is derived from the election's TTL: the lease lasts one TTL,
    a leader that fails to renew for half a TTL considers the lease lost,
    and the record is checked four times per TTL.

    Use run to start a background thread that takes part in the election
    and release to leave it. on_transition is only ever called from one
    thread at a time.
    """

    def __init__(
        self,
        descriptor: ElectionConfig,
        on_transition: TransitionFunc,
        api: EndpointsAPI,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        lock: typing.Optional[EndpointsLock] = None,
    ) -> None:
        if descriptor.ttl <= 0:
            raise ValueError(f"invalid election ttl: {descriptor.ttl}")
        self.descriptor = descriptor
        self.identity = descriptor.identity
        self.lease_duration = descriptor.ttl
        self.renew_deadline = descriptor.ttl / 2
        self.retry_period = descriptor.ttl / 4
        self.timeout = timeout
        self._on_transition = on_transition
        self._lock = lock or EndpointsLock(
            api, descriptor.name, descriptor.namespace, timeout=timeout
        )
        self._now: typing.Callable[[], float] = time.monotonic
        self._io_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: typing.Optional[threading.Thread] = None
        self._released = False
        self._observed = LeaderElectionRecord()
        self._observed_time = 0.0
        self._renewed_at: typing.Optional[float] = None
        self._reported = ""

    @property
    def leader(self) -> str:
        """The leader identity most recently reported."""
        return self._reported

    def is_leader(self) -> bool:
        return self._renewed_at is not None

    def run(self) -> None:
        """Start taking part in the election in a background thread."""
        if self._thread is not None:
            raise RuntimeError("election already running")
        if self._released:
            raise RuntimeError("election already released")
        self._thread = threading.Thread(
            target=self._loop,
            name=f"election-{self.descriptor.name}",
            daemon=True,
        )
        self._thread.start()
        _logger.info(
            "Started election %s as %s (lock: %s, ttl: %ss)",
            self.descriptor.name,
            self.identity,
            self._lock.describe(),
            self.lease_duration,
        )

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.step()
            self._stop.wait(self.retry_period)
        _logger.debug("election loop exited")

    def step(self) -> None:
        """Perform a single acquire-or-renew cycle and report the leader
        if it changed.
        """
        with self._io_lock:
            if self._stop.is_set():
                return
            try:
                acquired = self._try_acquire_or_renew()
            except Exception as err:
                _logger.warning(
                    "Failed to update lock %s: %s", self._lock.describe(), err
                )
                acquired = False
        if self._stop.is_set():
            return
        now = self._now()
        if acquired:
            if self._renewed_at is None:
                _logger.info("Acquired lease %s", self._lock.describe())
            else:
                _logger.debug("Renewed lease %s", self._lock.describe())
            self._renewed_at = now
        elif (
            self._renewed_at is not None
            and now - self._renewed_at > self.renew_deadline
        ):
            _logger.warning("Lost lease %s", self._lock.describe())
            self._renewed_at = None
        self._report(self._current_leader(now))

    def _try_acquire_or_renew(self) -> bool:
        stamp = _timestamp()
        desired = LeaderElectionRecord(
            holder_identity=self.identity,
            lease_duration_seconds=max(1, math.ceil(self.lease_duration)),
            acquire_time=stamp,
            renew_time=stamp,
        )
        current = self._lock.get()
        if current is None:
            self._lock.create(desired)
            self._observe(desired)
            return True
        self._observe(current)
        holder = current.holder_identity
        if (
            holder
            and holder != self.identity
            and self._observed_time + self.lease_duration > self._now()
        ):
            return False
        if holder == self.identity:
            desired.acquire_time = current.acquire_time or stamp
            desired.leader_transitions = current.leader_transitions
        else:
            desired.leader_transitions = current.leader_transitions + 1
        self._lock.update(desired)
        self._observe(desired)
        return True

    def _observe(self, record: LeaderElectionRecord) -> None:
        if record != self._observed:
            self._observed = record
            self._observed_time = self._now()

    def _current_leader(self, now: float) -> str:
        if self._renewed_at is not None:
            return self.identity
        holder = self._observed.holder_identity
        if (
            holder
            and holder != self.identity
            and now - self._observed_time <= self.lease_duration
        ):
            return holder
        return ""

    def _report(self, leader: str) -> None:
        if leader == self._reported:
            return
        _logger.debug("leader changed: %r -> %r", self._reported, leader)
        self._reported = leader
        try:
            self._on_transition(leader)
        except Exception:
            _logger.exception("error handling leader change")

    def release(self) -> None:
        """Stop taking part in the election, giving up the lease if it
        is held. Only the first call has any effect.
        """
        if self._released:
            return
        self._released = True
        self._stop.set()
        with self._io_lock:
            holding = (
                self._renewed_at is not None
                or self._observed.holder_identity == self.identity
            )
            if holding:
                self._give_up()
            self._renewed_at = None
        if self._thread is not None and (
            self._thread is not threading.current_thread()
        ):
            self._thread.join(self.timeout)
        _logger.info("Left election %s", self.descriptor.name)

    def _give_up(self) -> None:
        stamp = _timestamp()
        record = LeaderElectionRecord(
            holder_identity="",
            lease_duration_seconds=1,
            acquire_time=stamp,
            renew_time=stamp,
            leader_transitions=self._observed.leader_transitions,
        )
        try:
            current = self._lock.get()
            current = current or LeaderElectionRecord()
            if current.holder_identity != self.identity:
                return
            self._lock.update(record)
        except Exception as err:
            _logger.warning(
                "Failed to release lock %s: %s", self._lock.describe(), err
            )
            return
        self._observed = record
        _logger.info("Released lease %s", self._lock.describe())
