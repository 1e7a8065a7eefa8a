from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "iamfetch"

    # AWS session
    AWS_REGION: Optional[str] = None
    AWS_PROFILE: Optional[str] = None
    AWS_ROLE_ARN: Optional[str] = None

    # Logging Level
    LOG_LEVEL: str = "INFO"

    # Policy and role descriptions are immutable after creation, so callers
    # that only push changes can skip the extra lookups.
    SKIP_FETCHING_POLICY_AND_ROLE_DESCRIPTIONS: bool = False
    # When set, the CloudFormation ownership index is not built
    HEURISTIC_CFN_MATCHING: bool = False

    # Exclusion rules
    SKIP_TAGGED: Union[List[str], str] = []
    INCLUDE_TAGGED: Union[List[str], str] = []
    SKIP_PATH_PREFIXES: Union[List[str], str] = []

    # Worker threads used for per-resource enrichment and bucket inspection
    FETCH_MAX_WORKERS: int = 10

    @field_validator("SKIP_TAGGED", "INCLUDE_TAGGED", "SKIP_PATH_PREFIXES", mode="before")
    @classmethod
    def assemble_list(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str) and v.startswith("[") and v.endswith("]"):
            try:
                import json
                return json.loads(v.replace("'", '"'))
            except json.JSONDecodeError:
                raise ValueError("List settings must be valid JSON when given in list form")
        elif isinstance(v, (list, tuple)):
            return list(v)
        raise ValueError("List settings must be a list, a comma-separated string or a JSON string list")

    @field_validator("FETCH_MAX_WORKERS")
    @classmethod
    def check_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("FETCH_MAX_WORKERS must be at least 1")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra='ignore'
    )

