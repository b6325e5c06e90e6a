import ssl
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from typing import Annotated
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from minerlink.bootstrap.config.loader import get_configfile
from minerlink.core.models.config import ConnectionConfig


class TLSSettings(BaseModel):
    cafile: Annotated[
        Path | None,
        Field(
            description=(
                "Path to the CA certificate (PEM) used to verify the pool.\n"
                "When omitted, the system trust store is used."
            ),
            default=None
        )
    ]

    certfile: Annotated[
        Path | None,
        Field(
            description="Optional client certificate (PEM) presented to the pool.",
            default=None
        )
    ]

    keyfile: Annotated[
        Path | None,
        Field(
            description="Private key (PEM) of the client certificate.",
            default=None
        )
    ]

    @field_validator("certfile", "keyfile", "cafile")
    @classmethod
    def validate_path(cls, v: Path | None) -> Path | None:
        if v is not None and not v.exists():
            raise ValueError(f"Path {v} does not exist.")
        return v


class PoolSettings(BaseModel):
    host: Annotated[
        str,
        Field(description="Host name or address of the Stratum pool.")
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port of the Stratum pool.",
            default=3333,
            ge=1,
            le=65535
        )
    ]

    tls: Annotated[
        TLSSettings | None,
        Field(
            description=(
                "Enable TLS (stratum+ssl). Leave unset for plain TCP."
            ),
            default=None
        )
    ]


class AccountSettings(BaseModel):
    user: Annotated[
        str,
        Field(description="Worker name sent with mining.authorize and mining.submit.")
    ]

    password: Annotated[
        str,
        Field(
            description="Worker password. Most pools ignore it.",
            default="x"
        )
    ]


class ClientSettings(BaseModel):
    user_agent: Annotated[
        str | None,
        Field(
            description="User agent sent with mining.subscribe.",
            default="minerlink/0.1"
        )
    ]

    keepalive_interval: Annotated[
        int,
        Field(
            description="Seconds between TCP keep-alive probes.",
            default=120,
            gt=0
        )
    ]

    no_delay: Annotated[
        bool,
        Field(
            description="Disable Nagle's algorithm on the pool connection.",
            default=True
        )
    ]

    max_buffer_size: Annotated[
        int,
        Field(
            description="Maximum size of an incomplete inbound line.",
            default=1 * 1024 * 1024,
            gt=0
        )
    ]

    def to_connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            no_delay=self.no_delay,
            keepalive_interval=self.keepalive_interval,
            max_buffer_size=self.max_buffer_size,
        )


class MinerlinkConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MINERLINK_",
        env_nested_delimiter="__",
        extra="allow"
    )

    pool: Annotated[
        PoolSettings,
        Field(description="Pool to connect to.")
    ]

    account: Annotated[
        AccountSettings,
        Field(description="Worker credentials.")
    ]

    client: Annotated[
        ClientSettings,
        Field(
            description="Connection tuning.",
            default_factory=ClientSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=get_configfile()),
        )

    def get_client_ssl_ctx(self) -> ssl.SSLContext | None:
        tls = self.pool.tls
        if tls is None:
            return None

        ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=tls.cafile)
        if tls.certfile is not None:
            ctx.load_cert_chain(certfile=tls.certfile, keyfile=tls.keyfile)

        return ctx
