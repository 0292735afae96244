# UPS Influx - pmset Reader
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Runs the macOS power management utility and hands its battery report to
# the parser.
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
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Power-status source backed by `pmset -g batt`."""
from __future__ import annotations

import logging
import subprocess
from typing import List, Optional, Sequence

from .parser import ParsedUPS, parse_report

log = logging.getLogger(__name__)

PMSET_COMMAND = ("pmset", "-g", "batt")


class PowerStatusError(RuntimeError):
    """Raised when the power-status query itself cannot be run."""


def read_pmset(command: Sequence[str] = PMSET_COMMAND, timeout: Optional[float] = None) -> str:
    """Run the status query and return its standard output.

    Raises PowerStatusError if the command is missing, fails to start,
    exits non-zero or runs past `timeout` seconds.
    """
    try:
        proc = subprocess.run(
            list(command),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
            check=True,
        )
    except FileNotFoundError as exc:
        raise PowerStatusError(f"pmset read failed: command not found: {command[0]}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise PowerStatusError(f"pmset read failed: exit status {exc.returncode}: {stderr}") from exc
    except subprocess.TimeoutExpired as exc:
        raise PowerStatusError(f"pmset read failed: timed out after {timeout}s") from exc
    except OSError as exc:
        raise PowerStatusError(f"pmset read failed: {exc}") from exc
    return proc.stdout


def read_ups_status(command: Sequence[str] = PMSET_COMMAND, timeout: Optional[float] = None) -> List[ParsedUPS]:
    """Query pmset and return the present UPS units it reports.

    Malformed lines are logged by the parser and skipped; only a failure to
    run the query raises.
    """
    output = read_pmset(command, timeout=timeout)
    result = parse_report(output)
    log.debug("pmset reported %d present unit(s), %d unparseable line(s)", len(result.units), len(result.errors))
    return result.units
