from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from infra.mq.types import BrokerTarget, Credentials, parse_connname


class BrokerConfig(BaseSettings):
    QMGR: str = Field(default="QM1")
    CHANNEL: str = Field(default="DEV.APP.SVRCONN")
    CONNNAME: str = Field(default="localhost(1414)")
    USER: str = Field(default="app")
    PASSWORD: SecretStr = Field(default=SecretStr("appIsSecure"))

    INPUT_QUEUE: str = Field(default="DEV.QUEUE.1")
    OUTPUT_QUEUE: str = Field(default="DEV.QUEUE.2")

    # "ibmmq" talks to a real queue manager, "memory" stays in-process
    BACKEND: str = Field(default="ibmmq")

    model_config = SettingsConfigDict(env_prefix="MQ_", case_sensitive=False)

    @field_validator("CONNNAME")
    @classmethod
    def _check_connname(cls, value: str) -> str:
        parse_connname(value)
        return value.strip()

    def target(self) -> BrokerTarget:
        return BrokerTarget(
            queue_manager=self.QMGR,
            channel=self.CHANNEL,
            conn_name=self.CONNNAME,
        )

    def credentials(self) -> Credentials:
        return Credentials(user=self.USER, password=self.PASSWORD.get_secret_value())

    def to_dict_public(self) -> dict:
        """Config without secrets, for logging."""
        return self.model_dump(exclude={"PASSWORD"})


broker = BrokerConfig()
