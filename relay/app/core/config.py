"""
Centralized configuration management for the contract relay.

Pydantic v2 settings management to enforce strict validation and
fast-failure on invalid configuration. Schema sources are resolved
from these values exactly once, at startup.
"""

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Two mutually sufficient schema sources are recognized:
    - REQ_URL + RCPT_URL (direct schema locations)
    - ENS_NAME + RPC_URL (name-based lookup of both locations)

    Blank values are treated as absent.
    """

    # ---------------------------------------------------------------------
    # Direct schema locations
    # ---------------------------------------------------------------------

    req_url: Annotated[
        Optional[str],
        Field(default=None, description="Request schema document URL"),
    ]
    rcpt_url: Annotated[
        Optional[str],
        Field(default=None, description="Receipt schema document URL"),
    ]

    # ---------------------------------------------------------------------
    # Name-based schema discovery
    # ---------------------------------------------------------------------

    ens_name: Annotated[
        Optional[str],
        Field(default=None, description="Name whose text records point at both schemas"),
    ]
    rpc_url: Annotated[
        Optional[str],
        Field(default=None, description="JSON-RPC endpoint used for the name lookup"),
    ]

    # ---------------------------------------------------------------------
    # Listener / process
    # ---------------------------------------------------------------------

    port: Annotated[
        int,
        Field(default=3000, ge=1, le=65535, description="Listener port"),
    ]

    log_level: Annotated[
        str,
        Field(default="INFO", description="Root log level"),
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        str_strip_whitespace=True,
    )

    @field_validator("req_url", "rcpt_url", "ens_name", "rpc_url")
    @classmethod
    def blank_is_absent(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        if level not in allowed:
            raise ValueError(
                f"Unsupported LOG_LEVEL '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return level

    @property
    def has_direct_schema_urls(self) -> bool:
        return bool(self.req_url and self.rcpt_url)

    @property
    def has_name_lookup(self) -> bool:
        return bool(self.ens_name and self.rpc_url)


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Provider for application settings.

    Parsed once per process; subsequent calls return the same instance.
    """
    return Settings()  # singleton within process
