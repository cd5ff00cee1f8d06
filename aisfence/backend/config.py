"""AisFence — Application Configuration."""

import json
import logging
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Any, Optional

from aisfence.fusion_engine.ais_codes import MESSAGE_TYPE_OPTIONS

_cfg_logger = logging.getLogger("aisfence.config")

DEFAULT_API_KEY = "YOUR_API_KEY"


class StreamOptions(BaseModel):
    """Plugin options. Hosts pass them camelCase (apiKey, boundingBoxSize...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    api_key: str = Field(DEFAULT_API_KEY, title="API key for aisstream.io")
    bounding_box_size: int = Field(
        1, ge=1, title="AIS targets bounding box size around the vessel (in km)"
    )
    move_related_bounding_box: int = Field(
        10, ge=0,
        title="Maximum distance in percent (%) of the bounding box size before the bounding box location is renewed",
    )
    refresh_rate: int = Field(60, ge=0, title="How often the location is updated (in seconds)")
    watchdog_grace: float = Field(
        60.0, ge=0, title="Extra seconds without AIS traffic before the connection is recycled"
    )

    # Report types requested in FilterMessageTypes
    position_report: bool = Field(True, title="Position Report")
    ship_static_data: bool = Field(True, title="Ship Static Data Report")
    static_data_report: bool = Field(True, title="Static Data Report")
    standard_class_b_position_report: bool = Field(True, title="Standard Class B Position Report")
    extended_class_b_position_report: bool = Field(True, title="Extended Class B Position Report")
    single_slot_binary_message: bool = Field(False, title="Single Slot Binary Message")
    multi_slot_binary_message: bool = Field(False, title="Multi Slot Binary Message")
    aids_to_navigation_report: bool = Field(True, title="Aids To Navigation Report")
    base_station_report: bool = Field(True, title="Base Station Report")

    def message_types(self) -> tuple[str, ...]:
        return tuple(name for attr, name in MESSAGE_TYPE_OPTIONS if getattr(self, attr))

    @property
    def bounding_box_meters(self) -> float:
        return self.bounding_box_size * 1000

    @property
    def distance_limit(self) -> float:
        """Movement (meters) from the box center that triggers a resubscription."""
        return self.bounding_box_meters * (self.move_related_bounding_box / 100)

    @property
    def watchdog_timeout(self) -> float:
        return self.refresh_rate + self.watchdog_grace

    @classmethod
    def options_schema(cls) -> dict[str, Any]:
        """JSON schema of the options as a host configuration form sees them."""
        schema = cls.model_json_schema(by_alias=True)
        schema["required"] = ["apiKey", "boundingBoxSize"]
        return schema


class Settings(BaseSettings):
    """Standalone service settings loaded from environment variables."""

    # Server
    app_name: str = "AisFence"
    app_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Delta stream
    redis_url: str = "redis://localhost:6379"
    redis_stream_key: str = "aisfence:deltas"
    use_redis: bool = False  # Set True when Redis is available

    # Own-ship position source (Signal K REST API); empty disables polling
    signalk_url: str = ""
    signalk_token: Optional[str] = None

    # aisstream.io
    aisstream_url: str = "wss://stream.aisstream.io/v0/stream"
    stream: StreamOptions = StreamOptions()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AISFENCE_",
        env_nested_delimiter="__",
    )


def _load_settings() -> Settings:
    """Load settings, supplementing the aisstream key from credentials.json."""
    s = Settings()

    creds_path = Path(__file__).resolve().parent.parent.parent / "credentials.json"
    if s.stream.api_key == DEFAULT_API_KEY and creds_path.exists():
        try:
            creds = json.loads(creds_path.read_text(encoding="utf-8"))
            api_key = creds.get("aisstreamApiKey", "")
            if api_key:
                s.stream = s.stream.model_copy(update={"api_key": api_key})
                _cfg_logger.info("aisstream API key loaded from %s", creds_path.name)
        except Exception as e:
            _cfg_logger.warning("Failed to read credentials.json: %s", e)

    if s.stream.api_key == DEFAULT_API_KEY:
        _cfg_logger.warning("No aisstream API key configured, subscriptions will be rejected")

    return s


settings = _load_settings()
