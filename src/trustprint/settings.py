from functools import lru_cache
from typing import Literal, final

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL


class PostgresConfig(BaseModel):
    user: str
    password: str
    host: str
    port: int = 5432
    db: str


class APIConfig(BaseModel):
    title: str = "Trustprint API"
    version: str = "1.0.0"
    allowed_hosts: list[str] = Field(default_factory=list)
    api_key: str | None = None


class FingerprintModulesConfig(BaseModel):
    collectors: list[str] = Field(default_factory=lambda: ["screen", "webgl"])
    validators: list[str] = Field(default_factory=lambda: ["screen", "webgl"])
    validator_weights: dict[str, float] = Field(default_factory=dict)


class FingerprintConfig(BaseModel):
    check_type: Literal["server", "client", "both"] = "server"
    endpoints: list[str] = Field(default_factory=lambda: ["/sign-in/email"])
    save_ip_addresses: bool = True
    awaited: bool = True
    trust_forwarded_ip: bool = True

    signal_header: str = "X-Data"
    client_id_header: str = "X-Sc-Ua-Rd"
    server_id_headers: list[str] = Field(
        default_factory=lambda: [
            "user-agent",
            "cf-ipcountry",
            "sec-ch-ua",
            "sec-ch-ua-platform",
            "sec-ch-ua-mobile",
        ]
    )
    server_id_required_headers: list[str] = Field(
        default_factory=lambda: ["user-agent", "cf-ipcountry"]
    )
    max_signal_payload_bytes: int = Field(default=16_384, ge=256)
    max_update_attempts: int = Field(default=3, ge=1, le=10)

    suspicious_accounts_per_fingerprint: int | None = Field(default=None, ge=1)
    suspicious_fingerprints_per_account: int | None = Field(default=None, ge=1)

    modules: FingerprintModulesConfig = Field(default_factory=FingerprintModulesConfig)


@final
class Config(BaseSettings):
    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="APP__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: Literal["local", "dev", "prod"] = "local"

    api: APIConfig = Field(default_factory=APIConfig)
    postgres: PostgresConfig
    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)

    @property
    def database_url(self) -> str:
        host = "localhost" if self.env == "local" else self.postgres.host
        return URL.build(
            scheme="postgresql+asyncpg",
            user=self.postgres.user,
            password=self.postgres.password,
            host=host,
            port=self.postgres.port,
            path=f"/{self.postgres.db}",
        ).human_repr()


@lru_cache
def get_config() -> Config:
    return Config()
