from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    executor_backend: str = Field("httpx", validation_alias="EXECUTOR_BACKEND")

    request_connect_timeout_seconds: float = Field(5.0, validation_alias="REQUEST_CONNECT_TIMEOUT_SECONDS")
    request_read_timeout_seconds: float = Field(15.0, validation_alias="REQUEST_READ_TIMEOUT_SECONDS")
    request_user_agent: str = Field("", validation_alias="REQUEST_USER_AGENT")
    follow_redirects: bool = Field(True, validation_alias="FOLLOW_REDIRECTS")

    # Attempts per retry call (1, ..., retry_max_attempts). 0 disables requests entirely.
    retry_delay_seconds: float = Field(1.0, validation_alias="RETRY_DELAY_SECONDS")
    retry_max_attempts: int = Field(3, validation_alias="RETRY_MAX_ATTEMPTS")
