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
import typing

from elector import config


class Fail(ValueError):
    pass


class Parser(typing.Protocol):
    """Minimal protocol for wrapping argument parser or similar."""

    def set_defaults(self, **kwargs: typing.Any) -> None:
        """Set a default value for an argument parser."""

    def add_argument(
        self, *args: typing.Any, **kwargs: typing.Any
    ) -> typing.Any:
        """Add an argument to be parsed."""


def duration(value: str) -> float:
    """Parse a duration command line value into seconds."""
    try:
        return config.parse_duration(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err))


_TRUE = ("1", "t", "true", "y", "yes", "on")
_FALSE = ("0", "f", "false", "n", "no", "off")


def boolean(value: str) -> bool:
    """Parse a boolean command line value. Meant for flags that may be
    given bare (--flag) or with an explicit value (--flag=false).
    """
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value!r}")
