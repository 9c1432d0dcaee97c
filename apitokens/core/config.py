import logging
import sys

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    # Database
    db_url: str = Field("sqlite+aiosqlite:///./apitokens.sqlite3", alias="DB_URL")

    # Token format: "{id}|{prefix}{entropy}{crc32}"
    token_prefix: str = Field("", alias="TOKEN_PREFIX")
    token_entropy_length: int = Field(40, ge=22, alias="TOKEN_ENTROPY_LENGTH")
    default_token_name: str = Field("api-token", alias="DEFAULT_TOKEN_NAME")

    # Values of --expires that mean "no expiration"
    never_expires_values: list[str] = Field(
        default_factory=lambda: ["never", "none", "null", "no", "false", "0"],
        alias="NEVER_EXPIRES_VALUES",
    )

    # scrypt work factor for hashed credential secrets
    scrypt_cost: int = Field(2**14, alias="SCRYPT_COST")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Send apitokens records to stderr at ``level`` (LOG_LEVEL by default).

    basicConfig is a no-op when the root logger already has handlers, so an
    embedding server's logging setup is left alone.
    """
    level = (level or settings.log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("apitokens").setLevel(level)
