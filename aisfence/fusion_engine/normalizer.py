"""AisFence — Report Normalizer.

Maps one decoded aisstream report onto Signal K paths. A value is emitted
only when its source is present; ``0`` is a valid course, heading, status or
dimension and is never treated as missing.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from aisfence.backend.models import FieldAssignment
from aisfence.backend.reports import (
    AidsToNavigationReport,
    BaseStationReport,
    Eta,
    ExtendedClassBPositionReport,
    PositionReport,
    RawReport,
    ShipStaticData,
    StandardClassBPositionReport,
    StaticDataReport,
)
from aisfence.fusion_engine.ais_codes import ATON_TYPE, NAV_STATE, SHIP_TYPE

logger = logging.getLogger("aisfence.normalizer")

VESSEL_CONTEXT = "vessels.urn:mrn:imo:mmsi:"
ATON_CONTEXT = "atons.urn:mrn:imo:mmsi:"

KNOTS_TO_MS = 0.514444

MOVEMENT_REPORTS = (PositionReport, StandardClassBPositionReport, ExtendedClassBPositionReport)

AIS_CLASS = {
    PositionReport: "A",
    ShipStaticData: "A",
    StandardClassBPositionReport: "B",
    ExtendedClassBPositionReport: "B",
    AidsToNavigationReport: "ATON",
    BaseStationReport: "BASE",
}

# aisstream: "2024-01-01 12:34:56.123456789 +0000 UTC"
_AISSTREAM_TIME = re.compile(
    r"^(\d{4}-\d{2}-\d{2}) (\d{2}:\d{2}:\d{2})(?:\.(\d+))? ([+-]\d{2})(\d{2})(?: \w+)?$"
)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _clean_text(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace runs to one space and trim; empty becomes None."""
    if value is None:
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


def _rad(degrees: float) -> float:
    return math.radians(degrees)


def parse_report_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 or aisstream timestamp into an aware UTC datetime."""
    if not value:
        return None
    text = value.strip()
    m = _AISSTREAM_TIME.match(text)
    if m:
        date, clock, frac, off_h, off_m = m.groups()
        frac = (frac or "0")[:6].ljust(6, "0")
        text = f"{date}T{clock}.{frac}{off_h}:{off_m}"
    elif text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime) -> str:
    """UTC ISO instant with millisecond precision and a Z suffix."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def _as_int(value: Any) -> int:
    """Leading-integer parse; raises ValueError for anything non-numeric."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"not a finite number: {value!r}")
        return int(value)
    m = _LEADING_INT.match(str(value))
    if not m:
        raise ValueError(f"not a number: {value!r}")
    return int(m.group(1))


def compute_eta(reported: datetime, eta: Eta) -> Optional[datetime]:
    """Add the ETA month/day/hour/minute offsets to the report time, in order.

    The month step keeps the day of month and lets it overflow into the next
    month (Jan 31 + 1 month is Mar 2 or 3), like a calendar setter.
    """
    try:
        months = _as_int(eta.month)
        days = _as_int(eta.day)
        hours = _as_int(eta.hour)
        minutes = _as_int(eta.minute)
    except ValueError as e:
        logger.debug("Skipping ETA: %s", e)
        return None

    try:
        total = reported.month - 1 + months
        first = reported.replace(year=reported.year + total // 12, month=total % 12 + 1, day=1)
        shifted = first + timedelta(days=reported.day - 1)
        return shifted + timedelta(days=days, hours=hours, minutes=minutes)
    except (ValueError, OverflowError) as e:
        logger.debug("Skipping ETA out of range: %s", e)
        return None


def report_context(report: RawReport) -> Optional[str]:
    """Vessel or navaid context for the report, None when there is no MMSI."""
    mmsi = report.metadata.mmsi
    if not _present(mmsi):
        return None
    if isinstance(report.message, AidsToNavigationReport):
        return f"{ATON_CONTEXT}{mmsi}"
    return f"{VESSEL_CONTEXT}{mmsi}"


def normalize_report(report: RawReport) -> Optional[tuple[str, list[FieldAssignment]]]:
    """Translate a report into (context, field assignments).

    Returns None when the report carries no MMSI.
    """
    context = report_context(report)
    if context is None:
        logger.debug("Skipping %s without MMSI", report.message_type)
        return None

    meta = report.metadata
    msg = report.message
    movement = msg if isinstance(msg, MOVEMENT_REPORTS) else None
    static = msg if isinstance(msg, ShipStaticData) else None
    part_b = msg.report_b if isinstance(msg, StaticDataReport) else None
    aton = msg if isinstance(msg, AidsToNavigationReport) else None

    values: list[FieldAssignment] = []

    def put(path: str, value: Any):
        values.append(FieldAssignment(path=path, value=value))

    put("", {"mmsi": str(meta.mmsi)})

    if _present(meta.longitude) and _present(meta.latitude):
        put("navigation.position", {"longitude": meta.longitude, "latitude": meta.latitude})

    if movement is not None:
        if _present(movement.cog):
            put("navigation.courseOverGroundTrue", _rad(movement.cog))
            put("navigation.courseOverGroundMagnetic", _rad(movement.cog))
        if _present(movement.sog):
            put("navigation.speedOverGround", movement.sog * KNOTS_TO_MS)
        if isinstance(movement, PositionReport) and _present(movement.rate_of_turn):
            put("navigation.rateOfTurn", _rad(movement.rate_of_turn))
        if _present(movement.true_heading):
            put("navigation.headingTrue", _rad(movement.true_heading))

    reported = parse_report_time(meta.time_utc)
    if reported is not None:
        put("navigation.datetime", reported.strftime("%Y-%m-%dT%H:%M:%S.000Z"))
    elif _present(meta.time_utc):
        logger.debug("Unparseable time_utc %r for %s", meta.time_utc, context)

    if movement is not None and _present(movement.navigational_status):
        state = NAV_STATE.get(movement.navigational_status)
        if state is not None:
            put("navigation.state", state)

    name = _clean_text(aton.name if aton is not None else meta.ship_name)
    if name is not None:
        put("", {"name": name})

    destination = _clean_text(static.destination if static is not None else None)
    if destination is None and part_b is not None:
        destination = _clean_text(part_b.destination)
    if destination is not None:
        put("navigation.destination.commonName", destination)

    if static is not None and _present(static.type):
        put("design.aisShipType", {"id": static.type, "name": SHIP_TYPE.get(static.type)})

    if static is not None and _present(static.imo_number):
        put("", {"registrations": {"imo": f"IMO {static.imo_number}"}})

    call_sign = _clean_text(static.call_sign if static is not None else None)
    if call_sign is None and part_b is not None:
        call_sign = _clean_text(part_b.call_sign)
    if call_sign is not None:
        put("", {"communication": {"callsignVhf": call_sign}})

    if static is not None and static.eta is not None and reported is not None:
        eta = compute_eta(reported, static.eta)
        if eta is not None:
            put("navigation.destination.eta", format_iso(eta))

    if static is not None and _present(static.maximum_static_draught):
        draught = static.maximum_static_draught
        put("design.draft", {"current": draught, "maximum": draught})

    dims = static.dimension if static is not None else None
    if dims is not None:
        if _present(dims.a) and _present(dims.b):
            put("design.length", {"overall": dims.a + dims.b})
        if _present(dims.c) and _present(dims.d):
            put("design.beam", dims.c + dims.d)

    ais_class = AIS_CLASS.get(type(msg))
    if ais_class is not None:
        put("sensors.ais.class", ais_class)
    if aton is not None:
        if _present(aton.type):
            put("atonType", {"id": aton.type, "name": ATON_TYPE.get(aton.type)})
        if _present(aton.virtual_aton):
            put("virtual", aton.virtual_aton)
        if _present(aton.off_position):
            put("offPosition", aton.off_position)

    return context, values
