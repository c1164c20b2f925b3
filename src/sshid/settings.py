from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SSHID_", env_file=".env", extra="ignore")

    backend: str = Field(default="openssh")

    ssh_agent: str = Field(default="ssh-agent")
    ssh_add: str = Field(default="ssh-add")
    ssh_keygen: str = Field(default="ssh-keygen")
    command_timeout: float = 30.0

settings = Settings()
