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
import os
import typing

from elector import config

from .cli import Fail, Parser, boolean, duration


def from_env(
    ns: argparse.Namespace,
    var: str,
    ename: str,
    convert_value: typing.Optional[typing.Callable] = str,
) -> None:
    """Bind an environment variable to a command line option. This allows
    certain cli options to be set from env vars if the cli option is
    not directly provided.
    """
    value = getattr(ns, var, None)
    if not value:
        value = os.environ.get(ename, "")
    if convert_value is not None:
        value = convert_value(value)
    if value:
        setattr(ns, var, value)


def env_to_cli(cli: argparse.Namespace) -> None:
    """Configure the default command line option to environment variable
    mappings.
    """
    from_env(cli, "id", "HOSTNAME")


def enable_logging(cli: argparse.Namespace) -> None:
    """Configure command line logging."""
    level = logging.DEBUG if cli.debug else logging.INFO
    logger = logging.getLogger()
    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("{asctime}: {levelname}: {message}", style="{")
    )
    handler.setLevel(level)
    logger.addHandler(handler)
    # the cluster client logs every request at debug level
    logging.getLogger("kubernetes").setLevel(max(level, logging.INFO))


def global_args(parser: Parser) -> None:
    """Configure the elector command line arguments."""
    parser.add_argument(
        "--election",
        default="",
        help="The name of the election.",
    )
    parser.add_argument(
        "--id",
        default="",
        help=(
            "The id of this participant"
            " (defaults to the HOSTNAME environment variable)."
        ),
    )
    parser.add_argument(
        "--election-namespace",
        default=config.DEFAULT_NAMESPACE,
        help="The Kubernetes namespace for this election.",
    )
    parser.add_argument(
        "--ttl",
        type=duration,
        default=config.DEFAULT_TTL,
        help="The TTL for this election (eg. 10s, 1m).",
    )
    parser.add_argument(
        "--use-cluster-credentials",
        type=boolean,
        nargs="?",
        const=True,
        default=False,
        help="Should this request use cluster credentials?",
    )
    parser.add_argument(
        "--kubeconfig",
        default="",
        help=(
            "Path to a kubeconfig file"
            " (ignored when using cluster credentials)."
        ),
    )
    parser.add_argument(
        "--context",
        default="",
        help="The kubeconfig context to use.",
    )
    parser.add_argument(
        "--http",
        default="",
        help=(
            "If non-empty, stand up a simple webserver that reports"
            " the leader state on the given address (eg. :8080)."
        ),
    )
    parser.add_argument(
        "--webHook",
        dest="webhook",
        default="",
        help=(
            "End point to call when the leader changes. Called with"
            " parameter status=LEADING|OTHERLEADER and leader parameter."
        ),
    )
    parser.add_argument(
        "--webhook-timeout",
        type=duration,
        default=config.DEFAULT_TIMEOUT,
        help="Timeout for calls to the web hook.",
    )
    parser.add_argument(
        "--request-timeout",
        type=duration,
        default=config.DEFAULT_TIMEOUT,
        help="Timeout for requests to the Kubernetes API.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug level logging.",
    )


def elector_config(cli: argparse.Namespace) -> config.ElectorConfig:
    """Return the elector configuration for the command line. Raises Fail
    if the command line does not describe a usable configuration.
    """
    if not cli.id:
        raise Fail("--id cannot be empty")
    if not cli.election:
        raise Fail("--election cannot be empty")
    try:
        election = config.ElectionConfig(
            name=cli.election,
            identity=cli.id,
            namespace=cli.election_namespace,
            ttl=cli.ttl,
        )
        return config.ElectorConfig(
            election=election,
            http_address=cli.http,
            webhook=cli.webhook,
            use_cluster_credentials=cli.use_cluster_credentials,
            kubeconfig=cli.kubeconfig,
            context=cli.context,
            webhook_timeout=cli.webhook_timeout,
            request_timeout=cli.request_timeout,
        )
    except ValueError as err:
        raise Fail(str(err)) from err
