from pydantic import Field
from pydantic_settings import BaseSettings


class FrontendConfig(BaseSettings):
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")
    API_PORT: int = Field(default=3102)
    RECORD_COUNT: int = Field(default=1000, ge=0)

    # Run the prime consumer inside this process (useful with MQ_BACKEND=memory)
    RUN_EMBEDDED_CONSUMER: bool = Field(default=False)

    # 0 keeps the bulk publish unbounded
    PUBLISH_CONCURRENCY: int = Field(default=0, ge=0)


class StoreConfig(BaseSettings):
    STORE_TYPE: str = Field(default="memory")

    # Redis connection
    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379)
    REDIS_PASSWORD: str = Field(default="appIsSecure")
    REDIS_DB: int = Field(default=0)

    RECORD_PREFIX: str = Field(default="record")

    def to_dict(self) -> dict:
        return self.model_dump()

    def to_dict_public(self) -> dict:
        """Config without secret fields."""
        return self.model_dump(exclude={"REDIS_PASSWORD"})


frontend = FrontendConfig()
store = StoreConfig()
