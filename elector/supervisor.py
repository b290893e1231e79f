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

import logging
import signal
import threading
import typing

from . import election as election_mod
from .config import ElectorConfig
from .kube import PodLabeler
from .leader import ObservedLeader
from .reactor import TransitionReactor
from .web import DRAIN_TIMEOUT, StatusServer
from .webhook import WebhookNotifier

_logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class Supervisor:
    """Run the elector: take part in the election, react to leader
    changes, serve status over HTTP and clean up on termination.

    The api argument is a cluster core API handle (or compatible fake)
    used both for the election lock and for labeling the local pod.
    """

    def __init__(
        self,
        cfg: ElectorConfig,
        api: typing.Any,
        *,
        election_cls: typing.Callable[
            ..., election_mod.Election
        ] = election_mod.Election,
    ) -> None:
        self.cfg = cfg
        self.api = api
        self._election_cls = election_cls
        self.leader_state = ObservedLeader()
        self.stop_event = threading.Event()
        notifier = None
        if cfg.webhook:
            notifier = WebhookNotifier(
                cfg.webhook, timeout=cfg.webhook_timeout
            )
        self.reactor = TransitionReactor(
            cfg.identity,
            PodLabeler(
                api,
                cfg.identity,
                cfg.namespace,
                timeout=cfg.request_timeout,
            ),
            self.leader_state,
            notifier=notifier,
        )
        self.election: typing.Optional[election_mod.Election] = None
        self.server: typing.Optional[StatusServer] = None

    def start(self) -> None:
        """Create the election and start the background tasks.
        Errors creating the election or binding the HTTP server are
        raised to the caller.
        """
        self.election = self._election_cls(
            self.cfg.election,
            self.reactor,
            self.api,
            timeout=self.cfg.request_timeout,
        )
        self.election.run()
        if self.cfg.http_address:
            self.server = StatusServer(
                self.cfg.http_address, self.leader_state, self.cfg.identity
            )
            self.server.start()

    def install_signal_handlers(self) -> None:
        def _handler(signum: int, frame: typing.Any) -> None:
            _logger.info("Received signal %s", signal.Signals(signum).name)
            self.stop_event.set()

        for sig in TERMINATION_SIGNALS:
            signal.signal(sig, _handler)

    def wait(self) -> None:
        """Block until a termination signal (or stop) is received."""
        self.stop_event.wait()

    def stop(self) -> None:
        self.stop_event.set()

    def shutdown(self, drain_timeout: float = DRAIN_TIMEOUT) -> None:
        """Clear the leader label, leave the election and stop the HTTP
        server. All steps are attempted. Only a failure to stop the HTTP
        server is raised.
        """
        _logger.info("Shutting down")
        try:
            self.reactor.shutdown()
        except Exception:
            _logger.exception("failed to clear leader state")
        if self.election is not None:
            try:
                self.election.release()
            except Exception:
                _logger.exception("failed to release election")
        if self.server is not None:
            self.server.shutdown(drain_timeout)
        _logger.info("Shutdown complete")

    def run(self) -> None:
        """Start everything, wait for termination and clean up. Cleanup
        also runs if starting fails part way.
        """
        self.install_signal_handlers()
        try:
            self.start()
            self.wait()
        finally:
            self.shutdown()
