"""
Simulated Gate: Configuration
=============================

What:  Immutable configuration for the provisioning gate, loaded with Pydantic Settings.
How:   Values come from keyword arguments, environment variables or a `.env` file.
       The two required values accept both their field names and the plugin-style
       keys used by the reverse proxy (`IotHubUrl`, `SubscriptionKey`).
Who:   Passed to SimulatedDeviceMiddleware and IotHubClient at construction.
When:  Built once per application; never mutated afterwards (the model is frozen).

Environment variables (case-insensitive):
    IOT_HUB_URL / IOTHUBURL            Base URL of the IoT hub (required)
    SUBSCRIPTION_KEY / SUBSCRIPTIONKEY Subscription key sent to the hub (required)
    SUBSCRIPTION_KEY_HEADER            Header carrying the key (default: X-Subscription-Key)
    PROVISIONING_PATH                  Path appended to the hub URL
    REQUEST_TIMEOUT                    Outbound call timeout in seconds (default: 10)
    LOG_LEVEL                          Host log level (default: INFO)
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Both values must match what the IoT hub simulator endpoint expects.
DEFAULT_SUBSCRIPTION_KEY_HEADER = "X-Subscription-Key"
DEFAULT_PROVISIONING_PATH = "/simulator/simulated/device"
DEFAULT_REQUEST_TIMEOUT = 10.0


class Settings(BaseSettings):
    """
    Gate settings.

    Only `iot_hub_url` and `subscription_key` have to be supplied; the rest are
    environment-specific constants with defaults matching the existing hub.
    """

    # ── IoT Hub ───────────────────────────────────────────────────────────
    iot_hub_url: str = Field(
        validation_alias=AliasChoices("iot_hub_url", "IotHubUrl"),
        description="Base URL of the IoT hub, without trailing path",
    )
    subscription_key: str = Field(
        validation_alias=AliasChoices("subscription_key", "SubscriptionKey"),
        description="Subscription key attached to every provisioning call",
    )
    subscription_key_header: str = Field(default=DEFAULT_SUBSCRIPTION_KEY_HEADER)
    provisioning_path: str = Field(default=DEFAULT_PROVISIONING_PATH)

    # What: Seconds allowed for the whole hub call, from connect to the last body byte
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT)

    # ── Host ──────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be a positive number of seconds")
        return v

    @property
    def provisioning_url(self) -> str:
        """Raw target URL; parsed (and rejected if invalid) per request by IotHubClient."""
        return self.iot_hub_url + self.provisioning_path


@lru_cache
def get_settings() -> Settings:
    """Settings for the application factory, read from the environment once."""
    return Settings()
