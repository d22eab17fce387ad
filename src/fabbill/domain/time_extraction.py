"""Time extraction for service lines.

Derives, for every service line on a reservation, the minutes actually spent
on a machine (from machine utilization records) and the minutes booked at
submission time. Machine utilization records carry no foreign key to the
service line they belong to, so they are associated through a prioritized
list of matching rules.
"""

import logging
import math
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Iterable, Optional, Sequence

from fabbill.domain.entities import (
    BillingBasis,
    DownTime,
    ExtractedTime,
    MachineUtilization,
    OperatingTime,
    ServiceLineItem,
)
from fabbill.utils.time_parser import minutes_since_midnight, parse_time_of_day

logger = logging.getLogger(__name__)

TIME_BASED_STATUSES = frozenset({"Ongoing", "Pending Payment", "Completed"})
BOOKED_STATUSES = frozenset({"Pending Admin Approval", "Approved"})

MINUTES_PER_DAY = 24 * 60
UNSPECIFIED_EQUIPMENT = "not specified"

_OPERATION_PATTERN = re.compile(r"Operation:\s*(\d+)\s*mins?\b", re.IGNORECASE)
_MINS_HRS_PATTERN = re.compile(
    r"(\d+)\s*mins?\s*\(\s*\d+(?:\.\d+)?\s*hrs?\s*\)", re.IGNORECASE
)

Candidate = tuple[int, MachineUtilization]
MatchRule = Callable[[ServiceLineItem, Sequence[Candidate]], Optional[int]]


def billing_basis(status: Optional[str]) -> BillingBasis:
    """Return which time figure is authoritative for a reservation status."""
    normalized = (status or "").strip()
    if normalized in TIME_BASED_STATUSES:
        return BillingBasis.TIME_BASED
    if normalized in BOOKED_STATUSES:
        return BillingBasis.BOOKED
    return BillingBasis.UNBILLED


def safe_int_minutes(value: Any) -> int:
    """Coerce a minutes value to a non-negative int; anything unusable is 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number <= 0:
        return 0
    return int(number)


def dedupe_operating_times(times: Iterable[OperatingTime]) -> list[OperatingTime]:
    """Drop operating times repeating an earlier (date, start, end, operator)."""
    seen: set[tuple] = set()
    unique = []
    for entry in times:
        key = entry.dedupe_key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique


def dedupe_down_times(times: Iterable[DownTime]) -> list[DownTime]:
    """Drop down times repeating an earlier (date, product, minutes, cause, operator)."""
    seen: set[tuple] = set()
    unique = []
    for entry in times:
        key = entry.dedupe_key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(entry)
    return unique


def interval_minutes(
    start: Optional[str], end: Optional[str], on_date: Optional[date] = None
) -> int:
    """Return the length of an operating interval in whole minutes.

    Invalid times read as midnight. An end before the start wraps to the
    next day, so the result is always in [0, 1440).

    Args:
        start: Start time ("HH:MM" or ISO date-time)
        end: End time ("HH:MM" or ISO date-time)
        on_date: Optional date; when given, full date-time subtraction is used
    """
    start_time = parse_time_of_day(start) or time(0, 0)
    end_time = parse_time_of_day(end) or time(0, 0)

    if on_date is not None:
        start_dt = datetime.combine(on_date, start_time)
        end_dt = datetime.combine(on_date, end_time)
        if end_dt < start_dt:
            end_dt += timedelta(days=1)
        minutes = (end_dt - start_dt).total_seconds() / 60
    else:
        minutes = minutes_since_midnight(end_time) - minutes_since_midnight(start_time)
        if minutes < 0:
            minutes += MINUTES_PER_DAY

    return int(minutes) % MINUTES_PER_DAY


def operating_minutes(times: Iterable[OperatingTime]) -> int:
    """Sum deduplicated operating intervals, skipping ones missing an endpoint."""
    total = 0
    for entry in dedupe_operating_times(times):
        if not entry.start_time or not entry.end_time:
            continue
        total += interval_minutes(entry.start_time, entry.end_time, entry.date)
    return total


def downtime_minutes(times: Iterable[DownTime]) -> int:
    """Sum deduplicated down-time minutes."""
    return sum(safe_int_minutes(entry.minutes) for entry in dedupe_down_times(times))


def extract_display_minutes(*texts: Optional[str]) -> Optional[int]:
    """Find a minutes figure embedded in display text.

    Recognizes "Operation: <N> mins" and "<N> mins (<H> hrs)".
    """
    for text in texts:
        if not text:
            continue
        for pattern in (_OPERATION_PATTERN, _MINS_HRS_PATTERN):
            match = pattern.search(text)
            if match:
                return int(match.group(1))
    return None


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _equipment(line: ServiceLineItem) -> str:
    equipment = _clean(line.equipment_name)
    if equipment.lower() == UNSPECIFIED_EQUIPMENT:
        return ""
    return equipment


def _overlaps(left: Optional[str], right: Optional[str]) -> bool:
    a = _clean(left).lower()
    b = _clean(right).lower()
    return bool(a) and bool(b) and (a in b or b in a)


def _match_embedded_id(line: ServiceLineItem, candidates: Sequence[Candidate]) -> Optional[int]:
    line_id = _clean(line.id)
    if not line_id:
        return None
    for index, record in candidates:
        if line_id in _clean(record.machine_name) or line_id in _clean(record.service_name):
            return index
    return None


def _match_machine_and_service(
    line: ServiceLineItem, candidates: Sequence[Candidate]
) -> Optional[int]:
    equipment = _equipment(line)
    if not equipment:
        return None
    for index, record in candidates:
        if (
            _clean(record.machine_name) == equipment
            and _clean(record.service_name) == _clean(line.service_name)
        ):
            return index
    return None


def _match_machine(line: ServiceLineItem, candidates: Sequence[Candidate]) -> Optional[int]:
    equipment = _equipment(line)
    if not equipment:
        return None
    matches = [(i, r) for i, r in candidates if _clean(r.machine_name) == equipment]
    if not matches:
        return None
    for index, record in matches:
        if _clean(record.service_name) == _clean(line.service_name):
            return index
    return matches[0][0]


def _match_partial(line: ServiceLineItem, candidates: Sequence[Candidate]) -> Optional[int]:
    equipment = _equipment(line)
    partial = None
    for index, record in candidates:
        machine_overlap = _overlaps(record.machine_name, equipment)
        service_overlap = _overlaps(record.service_name, line.service_name)
        if machine_overlap and service_overlap:
            return index
        if partial is None and (machine_overlap or service_overlap):
            partial = index
    return partial


# Order matters: earlier rules win ties.
MATCH_RULES: tuple[tuple[str, MatchRule], ...] = (
    ("embedded-id", _match_embedded_id),
    ("machine-and-service", _match_machine_and_service),
    ("machine", _match_machine),
    ("partial", _match_partial),
)


def match_utilizations(
    lines: Sequence[ServiceLineItem], records: Sequence[MachineUtilization]
) -> dict[int, int]:
    """Assign machine utilization records to service lines.

    Every rule is tried for all still-unmatched lines before the next rule
    runs, and a record leaves the candidate pool once matched.

    Returns:
        Mapping of line position to record position
    """
    assignment: dict[int, int] = {}
    used: set[int] = set()

    for rule_name, rule in MATCH_RULES:
        for position, line in enumerate(lines):
            if position in assignment:
                continue
            candidates = [(i, r) for i, r in enumerate(records) if i not in used]
            if not candidates:
                return assignment
            index = rule(line, candidates)
            if index is not None:
                assignment[position] = index
                used.add(index)
                logger.debug(
                    "Matched service line %s to machine '%s' by %s rule",
                    line.id,
                    records[index].machine_name,
                    rule_name,
                )

    return assignment


def extract_times(
    status: Optional[str],
    lines: Sequence[ServiceLineItem],
    records: Sequence[MachineUtilization],
) -> list[ExtractedTime]:
    """Derive actual, booked and down-time minutes for each service line.

    Lines without a matching utilization record fall back to minutes shown
    in their display text, then to their booked minutes.
    """
    basis = billing_basis(status)
    assignment = match_utilizations(lines, records)
    results = []

    for position, line in enumerate(lines):
        booked = safe_int_minutes(line.booked_minutes)
        index = assignment.get(position)
        machine_name = None
        downtime = 0

        if index is not None:
            record = records[index]
            actual = operating_minutes(record.operating_times)
            downtime = downtime_minutes(record.down_times)
            source = "utilization"
            machine_name = record.machine_name
        else:
            display = extract_display_minutes(line.service_name, line.equipment_name)
            if display is not None:
                actual = display
                source = "display"
            else:
                actual = booked
                source = "booked"
            if basis == BillingBasis.TIME_BASED:
                logger.debug(
                    "No machine utilization for service line %s, using %s minutes",
                    line.id,
                    source,
                )

        results.append(
            ExtractedTime(
                line_id=line.id,
                actual_minutes=actual,
                booked_minutes=booked,
                downtime_minutes=downtime,
                source=source,
                machine_name=machine_name,
            )
        )

    return results
