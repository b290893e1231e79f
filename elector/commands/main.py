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

import argparse
import logging
import typing

from kubernetes.config import ConfigException

from elector import kube
from elector import supervisor
from elector.web import DrainTimeout

from .cli import Fail
from .common import elector_config, enable_logging, env_to_cli, global_args

_logger = logging.getLogger(__name__)


def parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="elector",
        description="Take part in a Kubernetes leader election.",
        allow_abbrev=False,
    )
    global_args(ap)
    return ap


def main(args: typing.Optional[typing.Sequence[str]] = None) -> None:
    cli = parser().parse_args(args)
    env_to_cli(cli)
    enable_logging(cli)
    cfg = elector_config(cli)
    _logger.info(
        "Joining election %s/%s as %s",
        cfg.namespace,
        cfg.election.name,
        cfg.identity,
    )

    try:
        api = kube.make_client(
            in_cluster=cfg.use_cluster_credentials,
            kubeconfig=cfg.kubeconfig,
            context=cfg.context,
        )
    except (ConfigException, OSError) as err:
        raise Fail(f"error connecting to the client: {err}") from err

    sup = supervisor.Supervisor(cfg, api)
    try:
        sup.run()
    except DrainTimeout as err:
        _logger.critical("Server Shutdown Failed: %s", err)
        raise Fail(str(err)) from err
    except OSError as err:
        raise Fail(f"failed to start: {err}") from err
    _logger.info("Server Exited Properly")
    return


if __name__ == "__main__":
    main()
