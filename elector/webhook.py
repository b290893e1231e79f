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
import urllib.error
import urllib.parse
import urllib.request

from .config import DEFAULT_TIMEOUT

_logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Calls a configured HTTP(S) endpoint whenever the leader changes.

    The endpoint receives a GET request with the query parameters
    `status` and `leader` appended to the configured URL. The response
    body is read and discarded. Errors (including non-2xx responses)
    are raised to the caller.

    Example:
    >>> wh = WebhookNotifier("http://hooks.example.org/elected")
    >>> wh.notify("LEADING", "pod-a")
    """

    # build_opener defaults, restricted to http(s)
    _handlers = [
        urllib.request.ProxyHandler,
        urllib.request.HTTPHandler,
        urllib.request.HTTPDefaultErrorHandler,
        urllib.request.HTTPRedirectHandler,
        urllib.request.HTTPErrorProcessor,
        urllib.request.HTTPSHandler,
    ]

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.url = url
        self.timeout = timeout
        self._opener = urllib.request.OpenerDirector()
        for handler in self._handlers:
            self._opener.add_handler(handler())

    def url_for(self, status: str, leader: str) -> str:
        """Return the full URL used to report the given status & leader."""
        parts = urllib.parse.urlsplit(self.url)
        params = urllib.parse.urlencode({"status": status, "leader": leader})
        query = f"{parts.query}&{params}" if parts.query else params
        return urllib.parse.urlunsplit(parts._replace(query=query))

    def notify(self, status: str, leader: str) -> None:
        url = self.url_for(status, leader)
        _logger.debug("calling webhook: %s", url)
        try:
            with self._opener.open(url, timeout=self.timeout) as res:
                res.read()
        except urllib.error.HTTPError as err:
            # the error carries the open response
            err.close()
            raise
        _logger.debug("webhook %s called", url)
