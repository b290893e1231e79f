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

import json

import elector.leader


def test_observed_leader():
    state = elector.leader.ObservedLeader()
    assert state.get() == elector.leader.LeaderData()
    assert state.get().name == ""
    assert not state.get()
    assert not state.get().is_leader("p1")
    assert not state.get().is_leader("")

    state.set("p1")
    assert state.get().name == "p1"
    assert state.get()
    assert state.get().is_leader("p1")
    assert not state.get().is_leader("p2")

    state.set("")
    assert not state.get()


def test_leader_data_json():
    assert json.loads(elector.leader.LeaderData().to_json()) == {"name": ""}
    data = elector.leader.LeaderData(name="p1")
    assert data.to_json() == '{"name":"p1"}'


def test_values_are_snapshots():
    state = elector.leader.ObservedLeader()
    state.set("p1")
    before = state.get()
    state.set("p2")
    assert before.name == "p1"
    assert state.get().name == "p2"
