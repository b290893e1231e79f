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

import kubernetes.config
import pytest

import elector.commands.cli
import elector.commands.main
import elector.kube
import elector.supervisor
import elector.web
from .test_election import FakeCoreAPI


def run(*args):
    return elector.commands.main.main(args)


@pytest.fixture()
def fake_run(monkeypatch):
    """Replace the client and the supervisor's main loop, collecting the
    configurations the supervisor would have run with.
    """
    seen = []

    def _make_client(**kwargs):
        seen.append(("client", kwargs))
        return FakeCoreAPI()

    def _run(self):
        seen.append(("run", self.cfg))

    monkeypatch.setattr(elector.kube, "make_client", _make_client)
    monkeypatch.setattr(elector.supervisor.Supervisor, "run", _run)
    return seen


def test_no_election(fake_run, monkeypatch):
    monkeypatch.setenv("HOSTNAME", "hx")
    with pytest.raises(elector.commands.cli.Fail):
        run("--id", "p1")
    assert fake_run == []


def test_no_id(fake_run, monkeypatch):
    monkeypatch.delenv("HOSTNAME", raising=False)
    with pytest.raises(elector.commands.cli.Fail):
        run("--election", "e1")
    assert fake_run == []


def test_hostname_fallback(fake_run, monkeypatch):
    monkeypatch.setenv("HOSTNAME", "hx")
    run("--election=e1")
    kind, cfg = fake_run[-1]
    assert kind == "run"
    assert cfg.identity == "hx"
    assert cfg.election.name == "e1"
    assert cfg.namespace == "default"
    assert cfg.election.ttl == 10.0
    assert cfg.http_address == ""
    assert cfg.webhook == ""
    assert fake_run[0] == (
        "client",
        {"in_cluster": False, "kubeconfig": "", "context": ""},
    )


def test_id_flag_wins(fake_run, monkeypatch):
    monkeypatch.setenv("HOSTNAME", "hx")
    run("--election=e1", "--id=p1")
    assert fake_run[-1][1].identity == "p1"


def test_all_flags(fake_run):
    run(
        "--election=e1",
        "--id=p1",
        "--election-namespace=ns1",
        "--ttl=30s",
        "--use-cluster-credentials",
        "--http=:8080",
        "--webHook=http://wh/x",
        "--webhook-timeout=2s",
        "--request-timeout=1m",
        "--debug",
    )
    assert fake_run[0] == (
        "client",
        {"in_cluster": True, "kubeconfig": "", "context": ""},
    )
    cfg = fake_run[-1][1]
    assert cfg.election.name == "e1"
    assert cfg.identity == "p1"
    assert cfg.namespace == "ns1"
    assert cfg.election.ttl == 30.0
    assert cfg.use_cluster_credentials
    assert cfg.http_address == ":8080"
    assert cfg.webhook == "http://wh/x"
    assert cfg.webhook_timeout == 2.0
    assert cfg.request_timeout == 60.0


def test_kubeconfig_flags(fake_run):
    run(
        "--election=e1",
        "--id=p1",
        "--use-cluster-credentials=false",
        "--kubeconfig=/tmp/kc",
        "--context=dev",
    )
    assert fake_run[0] == (
        "client",
        {"in_cluster": False, "kubeconfig": "/tmp/kc", "context": "dev"},
    )


@pytest.mark.parametrize(
    "args",
    [
        ("--election=e1", "--id=p1", "--bogus"),
        ("--election=e1", "--id=p1", "--ttl=soon"),
        ("--election=e1", "--id=p1", "--use-cluster-credentials=maybe"),
        ("--election=e1", "--i=p1"),
        ("--election=e1", "--id=p1", "--htt=127.0.0.1:0"),
        ("--elect=e1", "--id=p1"),
    ],
)
def test_bad_flags(fake_run, args):
    with pytest.raises(SystemExit) as err:
        run(*args)
    assert err.value.code == 2
    assert fake_run == []


@pytest.mark.parametrize(
    "args",
    [
        ("--election=e1", "--id=p1", "--ttl=0s"),
        ("--election=e1", "--id=p1", "--http=8080"),
        ("--election=e1", "--id=p1", "--webHook=wh/x"),
    ],
)
def test_bad_config(fake_run, args):
    with pytest.raises(elector.commands.cli.Fail):
        run(*args)
    assert fake_run == []


def test_client_failure(monkeypatch):
    def _fail(**kwargs):
        raise kubernetes.config.ConfigException("no credentials")

    monkeypatch.setattr(elector.kube, "make_client", _fail)
    with pytest.raises(elector.commands.cli.Fail) as err:
        run("--election=e1", "--id=p1")
    assert "no credentials" in str(err.value)


def test_drain_failure(fake_run, monkeypatch):
    def _run(self):
        raise elector.web.DrainTimeout("too slow")

    monkeypatch.setattr(elector.supervisor.Supervisor, "run", _run)
    with pytest.raises(elector.commands.cli.Fail):
        run("--election=e1", "--id=p1")


def test_start_failure(fake_run, monkeypatch):
    def _run(self):
        raise OSError(98, "Address already in use")

    monkeypatch.setattr(elector.supervisor.Supervisor, "run", _run)
    with pytest.raises(elector.commands.cli.Fail) as err:
        run("--election=e1", "--id=p1", "--http=127.0.0.1:8080")
    assert "Address already in use" in str(err.value)
