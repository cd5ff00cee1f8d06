"""AisFence — aisstream.io report envelope.

Inbound messages look like::

    {"MessageType": "PositionReport",
     "MetaData": {"MMSI": 230000001, "ShipName": "...", "latitude": 60.1,
                  "longitude": 24.9, "time_utc": "..."},
     "Message": {"PositionReport": {...}}}

They are decoded once, here, into a RawReport whose ``message`` is exactly
one of the report classes below. Downstream code dispatches on the class.
"""

import json
import logging
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)

logger = logging.getLogger("aisfence.reports")


class ReportDecodeError(ValueError):
    """Raised when an inbound payload is not a usable aisstream report."""


class _Report(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("*", mode="wrap")
    @classmethod
    def _omit_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        """An unusable field is dropped on its own; the rest of the report survives."""
        try:
            return handler(value)
        except ValidationError:
            logger.debug("Ignoring invalid %s.%s: %r", cls.__name__, info.field_name, value)
            return None


class ReportMetadata(_Report):
    mmsi: Optional[int] = Field(None, alias="MMSI")
    ship_name: Optional[str] = Field(None, alias="ShipName")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    time_utc: Optional[str] = None

    @field_validator("mmsi", mode="before")
    @classmethod
    def _blank_mmsi(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Dimension(_Report):
    a: Optional[int] = Field(None, alias="A")
    b: Optional[int] = Field(None, alias="B")
    c: Optional[int] = Field(None, alias="C")
    d: Optional[int] = Field(None, alias="D")


class Eta(_Report):
    # Kept raw: a malformed component only drops the ETA, not the report.
    month: Any = Field(None, alias="Month")
    day: Any = Field(None, alias="Day")
    hour: Any = Field(None, alias="Hour")
    minute: Any = Field(None, alias="Minute")


class _MovementReport(_Report):
    cog: Optional[float] = Field(None, alias="Cog")
    sog: Optional[float] = Field(None, alias="Sog")
    true_heading: Optional[float] = Field(None, alias="TrueHeading")
    navigational_status: Optional[int] = Field(None, alias="NavigationalStatus")
    latitude: Optional[float] = Field(None, alias="Latitude")
    longitude: Optional[float] = Field(None, alias="Longitude")


class PositionReport(_MovementReport):
    """Class A position report (message types 1, 2, 3)."""
    rate_of_turn: Optional[float] = Field(None, alias="RateOfTurn")


class StandardClassBPositionReport(_MovementReport):
    """Class B position report (message type 18)."""


class ExtendedClassBPositionReport(_MovementReport):
    """Extended class B position report (message type 19)."""
    name: Optional[str] = Field(None, alias="Name")


class ShipStaticData(_Report):
    """Class A static and voyage data (message type 5)."""
    name: Optional[str] = Field(None, alias="Name")
    call_sign: Optional[str] = Field(None, alias="CallSign")
    destination: Optional[str] = Field(None, alias="Destination")
    imo_number: Optional[int] = Field(None, alias="ImoNumber")
    type: Optional[int] = Field(None, alias="Type")
    dimension: Optional[Dimension] = Field(None, alias="Dimension")
    eta: Optional[Eta] = Field(None, alias="Eta")
    maximum_static_draught: Optional[float] = Field(None, alias="MaximumStaticDraught")


class StaticDataReportA(_Report):
    name: Optional[str] = Field(None, alias="Name")


class StaticDataReportB(_Report):
    call_sign: Optional[str] = Field(None, alias="CallSign")
    destination: Optional[str] = Field(None, alias="Destination")
    ship_type: Optional[int] = Field(None, alias="ShipType")
    dimension: Optional[Dimension] = Field(None, alias="Dimension")


class StaticDataReport(_Report):
    """Class B static data (message type 24, parts A and B)."""
    report_a: Optional[StaticDataReportA] = Field(None, alias="ReportA")
    report_b: Optional[StaticDataReportB] = Field(None, alias="ReportB")


class AidsToNavigationReport(_Report):
    """Aid-to-navigation report (message type 21)."""
    name: Optional[str] = Field(None, alias="Name")
    type: Optional[int] = Field(None, alias="Type")
    virtual_aton: Optional[bool] = Field(None, alias="VirtualAtoN")
    off_position: Optional[bool] = Field(None, alias="OffPosition")
    latitude: Optional[float] = Field(None, alias="Latitude")
    longitude: Optional[float] = Field(None, alias="Longitude")


class BaseStationReport(_Report):
    """Base station report (message type 4)."""
    latitude: Optional[float] = Field(None, alias="Latitude")
    longitude: Optional[float] = Field(None, alias="Longitude")


class SingleSlotBinaryMessage(_Report):
    """Single slot binary message (message type 25)."""


class MultiSlotBinaryMessage(_Report):
    """Multiple slot binary message (message type 26)."""


ReportMessage = Union[
    PositionReport,
    ShipStaticData,
    StaticDataReport,
    StandardClassBPositionReport,
    ExtendedClassBPositionReport,
    AidsToNavigationReport,
    BaseStationReport,
    SingleSlotBinaryMessage,
    MultiSlotBinaryMessage,
]

REPORT_TYPES: dict[str, type[_Report]] = {
    "PositionReport": PositionReport,
    "ShipStaticData": ShipStaticData,
    "StaticDataReport": StaticDataReport,
    "StandardClassBPositionReport": StandardClassBPositionReport,
    "ExtendedClassBPositionReport": ExtendedClassBPositionReport,
    "AidsToNavigationReport": AidsToNavigationReport,
    "BaseStationReport": BaseStationReport,
    "SingleSlotBinaryMessage": SingleSlotBinaryMessage,
    "MultiSlotBinaryMessage": MultiSlotBinaryMessage,
}


class RawReport(BaseModel):
    """One inbound aisstream report with its variant resolved."""
    model_config = ConfigDict(frozen=True)

    metadata: ReportMetadata
    message_type: str
    message: ReportMessage

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "RawReport":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ReportDecodeError(f"Invalid JSON: {e}") from e
        return cls.from_envelope(data)

    @classmethod
    def from_envelope(cls, data: Any) -> "RawReport":
        if not isinstance(data, dict):
            raise ReportDecodeError(f"Expected a JSON object, got {type(data).__name__}")
        if "error" in data:
            raise ReportDecodeError(f"Server error: {data['error']}")

        body = data.get("Message")
        if not isinstance(body, dict):
            raise ReportDecodeError("Missing Message body")

        message_type = data.get("MessageType")
        if message_type not in REPORT_TYPES or message_type not in body:
            message_type = next((k for k in body if k in REPORT_TYPES), None)
        if message_type is None:
            raise ReportDecodeError(f"Unsupported message type: {data.get('MessageType')!r}")

        try:
            return cls(
                metadata=ReportMetadata.model_validate(data.get("MetaData") or {}),
                message_type=message_type,
                message=REPORT_TYPES[message_type].model_validate(body[message_type] or {}),
            )
        except ValidationError as e:
            raise ReportDecodeError(f"Malformed {message_type}: {e.error_count()} invalid field(s)") from e
