from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from machinepool.naming import NamingPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    aws_region: str = "us-east-1"
    aws_role_arn: str = ""
    aws_external_id: str = ""

    status_backend: Literal["file", "database", "memory"] = "file"
    status_storage_path: str = "status"
    database_url: str = "sqlite:///./machinepools.db"

    log_level: str = "INFO"

    iam_profile_template: str = "{infra_id}-worker-profile"
    security_group_template: str = "{infra_id}-worker-sg"
    private_subnet_template: str = "{infra_id}-private-{zone}"

    def naming_policy(self) -> NamingPolicy:
        return NamingPolicy(
            iam_profile_template=self.iam_profile_template,
            security_group_template=self.security_group_template,
            private_subnet_template=self.private_subnet_template,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
