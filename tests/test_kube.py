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

import kubernetes.client
import kubernetes.config
import pytest
from kubernetes.client.rest import ApiException

import elector.kube
import elector.reactor
from .test_election import FakeCoreAPI


def test_make_client_in_cluster(monkeypatch):
    loaded = []

    def _load(client_configuration=None):
        client_configuration.host = "https://10.0.0.1:443"
        loaded.append(client_configuration)

    def _no_file(**kwargs):
        raise AssertionError("kubeconfig should not be used")

    monkeypatch.setattr(kubernetes.config, "load_incluster_config", _load)
    monkeypatch.setattr(kubernetes.config, "new_client_from_config", _no_file)
    api = elector.kube.make_client(in_cluster=True)
    assert isinstance(api, kubernetes.client.CoreV1Api)
    assert len(loaded) == 1
    assert api.api_client.configuration.host == "https://10.0.0.1:443"


def test_make_client_kubeconfig(monkeypatch):
    seen = {}

    def _new_client(config_file=None, context=None):
        seen["config_file"] = config_file
        seen["context"] = context
        return kubernetes.client.ApiClient()

    monkeypatch.setattr(
        kubernetes.config, "new_client_from_config", _new_client
    )
    api = elector.kube.make_client(kubeconfig="/tmp/kc", context="dev")
    assert isinstance(api, kubernetes.client.CoreV1Api)
    assert seen == {"config_file": "/tmp/kc", "context": "dev"}

    elector.kube.make_client()
    assert seen == {"config_file": None, "context": None}


def test_make_client_failure(monkeypatch):
    def _fail(**kwargs):
        raise kubernetes.config.ConfigException("no configuration found")

    monkeypatch.setattr(kubernetes.config, "new_client_from_config", _fail)
    with pytest.raises(kubernetes.config.ConfigException):
        elector.kube.make_client()


def test_pod_labeler():
    api = FakeCoreAPI()
    labeler = elector.kube.PodLabeler(api, "p1", "ns1", timeout=4)
    labeler.apply(elector.reactor.label_patch(True))
    assert api.pods[("ns1", "p1")] == {"leader": "yes"}
    ns, name, body, ctype = api.patches[0]
    assert (ns, name) == ("ns1", "p1")
    assert body == [
        {"op": "add", "path": "/metadata/labels/leader", "value": "yes"}
    ]
    assert ctype == "application/json-patch+json"

    labeler.apply(elector.reactor.label_patch(False))
    assert api.pods[("ns1", "p1")] == {}


def test_pod_labeler_remove_absent():
    api = FakeCoreAPI()
    labeler = elector.kube.PodLabeler(api, "p1", "default")
    # the fake api rejects removing a missing label like the real one
    labeler.apply(elector.reactor.label_patch(False))
    labeler.apply(elector.reactor.label_patch(False))
    assert len(api.patches) == 2
    assert api.pods[("default", "p1")] == {}


def test_pod_labeler_errors():
    api = FakeCoreAPI()
    labeler = elector.kube.PodLabeler(api, "p1", "default")
    api.patch_error = ApiException(status=422, reason="Unprocessable Entity")
    with pytest.raises(ApiException):
        labeler.apply(elector.reactor.label_patch(True))
    api.patch_error = ApiException(status=403, reason="Forbidden")
    with pytest.raises(ApiException):
        labeler.apply(elector.reactor.label_patch(False))
