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
import json


@dataclasses.dataclass(frozen=True)
class LeaderData:
    """Information about the current leader. An empty name means no
    leader is known.
    """

    name: str = ""

    def to_json(self) -> str:
        return json.dumps(dataclasses.asdict(self), separators=(",", ":"))

    def __bool__(self) -> bool:
        return bool(self.name)

    def is_leader(self, identity: str) -> bool:
        """Return true if the given identity is the leader."""
        return bool(self.name) and self.name == identity


class ObservedLeader:
    """Holds the most recently reported leader.
    The value is replaced wholesale on every update, so readers in other
    threads always see a complete LeaderData object. Only the transition
    reactor should call set.
    """

    def __init__(self) -> None:
        self._data = LeaderData()

    def get(self) -> LeaderData:
        return self._data

    def set(self, name: str) -> None:
        self._data = LeaderData(name=name)
