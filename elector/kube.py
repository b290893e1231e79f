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

import http
import logging
import typing

import kubernetes.client
import kubernetes.config
from kubernetes.client.rest import ApiException

from .config import DEFAULT_TIMEOUT

_logger = logging.getLogger(__name__)

JSON_PATCH = "application/json-patch+json"

JSONPatch = list[dict[str, str]]


def make_client(
    in_cluster: bool = False,
    kubeconfig: str = "",
    context: str = "",
) -> kubernetes.client.CoreV1Api:
    """Return a core API handle for the cluster.
    When in_cluster is true the service account credentials mounted in the
    pod are used. Otherwise credentials are read from a kubeconfig file,
    either the one named by kubeconfig or the client's default location.
    """
    if in_cluster:
        cfg = kubernetes.client.Configuration()
        kubernetes.config.load_incluster_config(client_configuration=cfg)
        api_client = kubernetes.client.ApiClient(configuration=cfg)
        _logger.debug("using in-cluster credentials")
    else:
        api_client = kubernetes.config.new_client_from_config(
            config_file=kubeconfig or None,
            context=context or None,
        )
        _logger.debug(
            "using credentials from %s (context: %s)",
            kubeconfig or "default kubeconfig",
            context or "current",
        )
    return kubernetes.client.CoreV1Api(api_client=api_client)


class PodAPI(typing.Protocol):
    """Minimal protocol for the API calls needed to patch a pod."""

    def patch_namespaced_pod(
        self, name: str, namespace: str, body: typing.Any, **kwargs: typing.Any
    ) -> typing.Any:
        """Patch the named pod."""
        ...  # pragma: no cover


def _only_removes(patch: JSONPatch) -> bool:
    return bool(patch) and all(op.get("op") == "remove" for op in patch)


class PodLabeler:
    """Applies JSON patches to the metadata of a single pod."""

    def __init__(
        self,
        api: PodAPI,
        pod_name: str,
        namespace: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api = api
        self.pod_name = pod_name
        self.namespace = namespace
        self.timeout = timeout

    def apply(self, patch: JSONPatch) -> None:
        try:
            self.api.patch_namespaced_pod(
                self.pod_name,
                self.namespace,
                patch,
                _content_type=JSON_PATCH,
                _request_timeout=self.timeout,
            )
        except ApiException as err:
            # removing a path that does not exist is rejected by the api
            # server, but the outcome (no label) is what was asked for
            if (
                err.status == http.HTTPStatus.UNPROCESSABLE_ENTITY
                and _only_removes(patch)
            ):
                _logger.debug(
                    "pod %s/%s already lacks patched paths",
                    self.namespace,
                    self.pod_name,
                )
                return
            raise
        _logger.info("Pod %s labelled successfully.", self.pod_name)
