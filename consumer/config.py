from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from infra.config.timeouts import Timeouts
from consumer.primality import DEFAULT_ROUNDS


class ConsumerConfig(BaseSettings):
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    PRIME_ROUNDS: int = Field(default=DEFAULT_ROUNDS, gt=0)
    RECEIVE_WAIT_MS: int = Field(default=Timeouts.RECEIVE_WAIT_MS, ge=0)
    RETRY_DELAY_SECONDS: float = Field(default=Timeouts.RETRY_DELAY_SECONDS, ge=0)

    model_config = SettingsConfigDict(env_prefix="CONSUMER_", case_sensitive=False)


consumer_config = ConsumerConfig()
