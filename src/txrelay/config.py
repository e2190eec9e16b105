from __future__ import annotations

from functools import lru_cache

import pydantic
from pydantic import field_validator
from pydantic_settings import BaseSettings

from txrelay.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Relayer signer (required)
    relayer_pk: str
    rpc_url: str
    chain_id: int
    contract_address: str

    # Submission
    abi_path: str | None = None
    priority_fee_gwei: str = "0.001"
    confirm_receipts: bool = False
    confirm_timeout: int = 30

    # CORS
    cors_origins: str = "*"
    cors_methods: str = "GET, POST, OPTIONS, PUT, DELETE"
    cors_headers: str = "Content-Type, Authorization, X-Requested-With"
    cors_max_age: int = 86400

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("relayer_pk", "rpc_url", "contract_address")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("relayer_pk")
    @classmethod
    def _hex_key(cls, v: str) -> str:
        body = v[2:] if v.startswith("0x") else v
        if len(body) != 64 or any(c not in "0123456789abcdefABCDEF" for c in body):
            raise ValueError("must be a 32-byte hex private key")
        return v

    @property
    def signer_key(self) -> str:
        """Private key with the 0x prefix eth_account expects."""
        if self.relayer_pk.startswith("0x"):
            return self.relayer_pk
        return f"0x{self.relayer_pk}"

    @property
    def cors_header_map(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.cors_origins,
            "Access-Control-Allow-Methods": self.cors_methods,
            "Access-Control-Allow-Headers": self.cors_headers,
            "Access-Control-Max-Age": str(self.cors_max_age),
        }


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment, failing fast on missing values."""
    try:
        return Settings(**overrides)
    except pydantic.ValidationError as e:
        fields = [str(err["loc"][0]).upper() for err in e.errors() if err.get("loc")]
        raise ConfigurationError(fields, detail=f"{e.error_count()} invalid setting(s)") from e


@lru_cache
def get_settings() -> Settings:
    return load_settings()
