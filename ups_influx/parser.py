# UPS Influx - pmset Report Parser
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Provides deterministic helpers for translating the text report printed by
# `pmset -g batt` into structured UPS status records, reporting malformed
# lines without aborting the batch.
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

"""Parsing helpers for `pmset -g batt` reports.

A report looks like this (the first line is a summary header)::

    Now drawing from 'AC Power'
     -CP1500PFCLCD (id=17825794)	100%; AC attached; not charging present: true

Key functions
- parse_status_line(line: str) -> ParsedUPS | None
    Decode a single power-source line. Returns None when the unit is not
    present. Raises LineParseError on malformed input.

- parse_report(text: str) -> ParseResult
    Decode a full report. Never raises for malformed content: every bad
    line becomes a LineError and processing continues with the next line.

Notes and conventions
- The format is position dependent (fixed id prefix, marker character
  before the model). All of that knowledge lives in this module.
- `charging` is False when neither "charging" nor "not charging" appears.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

log = logging.getLogger(__name__)

# "(id=" before the identifier, ")" after it
ID_PREFIX_LEN = 4

PRESENT_MARKER = "present: true"
AC_MARKER = "AC attached"
NOT_CHARGING_MARKER = "not charging"
CHARGING_MARKER = "charging"

_INT_RE = re.compile(r"[+-]?[0-9]+")


class LineParseError(ValueError):
    """Raised when a single report line does not match the expected layout."""


@dataclass(frozen=True)
class ParsedUPS:
    model: str
    id: str
    ac_attached: bool
    charging: bool
    battery_charge_percent: int


@dataclass(frozen=True)
class LineError:
    line_no: int
    line: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line_no}: {self.reason}: {self.line!r}"


@dataclass
class ParseResult:
    units: List[ParsedUPS] = field(default_factory=list)
    errors: List[LineError] = field(default_factory=list)


def _split_fields(line: str) -> tuple[str, str]:
    parts = line.split("\t")
    if len(parts) != 2:
        raise LineParseError(f"expected 2 tab-separated fields, got {len(parts)}")
    return parts[0], parts[1]


def _split_name(name_field: str) -> tuple[str, str]:
    """Return (model, id) from e.g. '-CP1500PFCLCD (id=17825794)'."""
    tokens = name_field.split(" ")
    if len(tokens) != 2:
        raise LineParseError(f"expected model and id separated by a space, got {len(tokens)} tokens")
    model_token, id_token = tokens
    return model_token[1:], id_token[ID_PREFIX_LEN:-1]


def _charging(status: str) -> bool:
    # "charging" is a substring of "not charging"; check the negative first
    if NOT_CHARGING_MARKER in status:
        return False
    if CHARGING_MARKER in status:
        return True
    return False


def _battery_percent(status: str) -> int:
    parts = status.split("%")
    if len(parts) != 2:
        raise LineParseError(f"expected a single '%' in status, got {len(parts) - 1}")
    pct_str = parts[0].strip()
    if not _INT_RE.fullmatch(pct_str):
        # int() alone would also accept "1_00" and non-ASCII digits
        raise LineParseError(
            f"failed to parse {pct_str!r} into int: invalid literal for int() with base 10: {pct_str!r}")
    return int(pct_str)


def parse_status_line(line: str) -> Optional[ParsedUPS]:
    """Parse one power-source line from the report.

    The line is trimmed before decoding. Returns None for units that are not
    physically present; that is a filter, not an error.

    Raises LineParseError on invalid layout or an unparseable percentage.
    """
    name_field, status = _split_fields(line.strip())
    model, ups_id = _split_name(name_field)
    ac_attached = AC_MARKER in status
    charging = _charging(status)
    if PRESENT_MARKER not in status:
        return None
    return ParsedUPS(
        model=model,
        id=ups_id,
        ac_attached=ac_attached,
        charging=charging,
        battery_charge_percent=_battery_percent(status),
    )


def parse_report(text: str) -> ParseResult:
    """Parse a full `pmset -g batt` report.

    The first line is a summary header and is always skipped, as are empty
    lines. Output order follows input order.
    """
    result = ParseResult()
    for line_no, line in enumerate(text.split("\n")):
        if line_no == 0 or not line:
            continue
        try:
            unit = parse_status_line(line)
        except LineParseError as exc:
            err = LineError(line_no=line_no, line=line.strip(), reason=str(exc))
            log.warning("failed to parse pmset %s", err)
            result.errors.append(err)
            continue
        if unit is None:
            log.debug("skipping UPS that is not present: %r", line.strip())
            continue
        result.units.append(unit)
    return result
