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
"""React to leadership changes reported by an election.

Every reported transition labels (or un-labels) the local pod, tells the
optional webhook about it and then records the new leader so that the
status server can report it.
"""

import enum
import logging
import threading
import typing

from .leader import ObservedLeader

_logger = logging.getLogger(__name__)

LEADER_LABEL_PATH = "/metadata/labels/leader"
LEADER_LABEL_VALUE = "yes"


class Status(str, enum.Enum):
    LEADING = "LEADING"
    OTHER_LEADER = "OTHERLEADER"


class Labeler(typing.Protocol):
    def apply(self, patch: list[dict[str, str]]) -> None:
        """Apply a JSON patch to the local workload record."""
        ...  # pragma: no cover


class Notifier(typing.Protocol):
    def notify(self, status: str, leader: str) -> None:
        """Notify an external party of a leader change."""
        ...  # pragma: no cover


def label_patch(leading: bool) -> list[dict[str, str]]:
    """Return the JSON patch that sets or clears the leader label."""
    if leading:
        return [
            {
                "op": "add",
                "path": LEADER_LABEL_PATH,
                "value": LEADER_LABEL_VALUE,
            }
        ]
    return [{"op": "remove", "path": LEADER_LABEL_PATH}]


class TransitionReactor:
    """Callable handling transition events for a single participant.
    Call it with the identity of the new leader or an empty string if
    no leader is known. Calls are serialized.
    """

    def __init__(
        self,
        identity: str,
        labeler: Labeler,
        leader_state: ObservedLeader,
        notifier: typing.Optional[Notifier] = None,
    ) -> None:
        self.identity = identity
        self.labeler = labeler
        self.leader_state = leader_state
        self.notifier = notifier
        self._lock = threading.Lock()
        self._closed = False

    def __call__(self, leader: str) -> None:
        with self._lock:
            if self._closed:
                _logger.info(
                    "Ignoring leader change to %r after shutdown", leader
                )
                return
            self._transition(leader)

    def shutdown(self) -> None:
        """Clear leadership state and stop reacting to further events."""
        with self._lock:
            if self._closed:
                return
            self._transition("")
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def _transition(self, leader: str) -> None:
        leading = leader == self.identity
        self._label(leading)
        status = Status.LEADING if leading else Status.OTHER_LEADER
        self._notify(status, leader)
        self.leader_state.set(leader)
        if leader:
            _logger.info("%s is the leader", leader)
        else:
            _logger.info("No leader is known")

    def _label(self, leading: bool) -> None:
        try:
            self.labeler.apply(label_patch(leading))
        except Exception as err:
            _logger.warning("Failed to update leader label: %s", err)

    def _notify(self, status: Status, leader: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(status.value, leader)
        except Exception as err:
            _logger.warning("Error calling webhook: %s", err)
