"""Application settings loaded from the environment and CLI overrides.

Uses pydantic-settings for validation. Every field can be set through an
environment variable prefixed with QUEUE_PROCESSOR_ (e.g.
QUEUE_PROCESSOR_QUEUE); the PGMQ DSN is also read from PGMQ_DSN.
"""

from functools import lru_cache
from typing import Any, Literal

import boto3
from pydantic import AliasChoices, Field, PostgresDsn, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from queue_processor.errors import ConfigurationError
from queue_processor.policy import DEFAULT_REQUEUE_DELAY

SQS_LOCAL_REGION = "sqs-local"
SQS_MAX_BATCH_SIZE = 10
SQS_MAX_DELAY_SECONDS = 900


@lru_cache(maxsize=1)
def known_sqs_regions() -> frozenset[str]:
    """Return every region botocore knows SQS to be available in, across partitions."""
    session = boto3.session.Session()
    regions: set[str] = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions("sqs", partition_name=partition))
    return frozenset(regions)


class Settings(BaseSettings):
    """Runtime settings for one consumer instance (queue target, poll cadence, drain)."""

    model_config = SettingsConfigDict(env_prefix="QUEUE_PROCESSOR_", extra="ignore")

    app_name: str = Field(default="Queue Processor")
    queue: str | None = Field(None, description="Queue name, or SQS queue URL")
    backend: Literal["sqs", "pgmq"] = Field("sqs", description="Which queue service to talk to")

    # SQS target: a local ElasticMQ port or an AWS region
    local_port: int | None = Field(None, description="Port of a local ElasticMQ server")
    local_host: str = Field("localhost", description="Host of a local ElasticMQ server")
    region: str | None = Field(None, description="AWS region of the SQS queue")

    # PGMQ target
    pgmq_dsn: PostgresDsn | None = Field(None, validation_alias=AliasChoices("pgmq_dsn", "PGMQ_DSN"))

    poll_interval: float = Field(0.1, gt=0, description="Seconds between fetches")
    requeue_delay: int = Field(DEFAULT_REQUEUE_DELAY, ge=0, le=SQS_MAX_DELAY_SECONDS)
    batch_size: int = Field(SQS_MAX_BATCH_SIZE, ge=1, le=SQS_MAX_BATCH_SIZE)
    visibility_timeout: int = Field(30, ge=0, description="Seconds a fetched message stays hidden")
    max_workers: int = Field(10, ge=1, description="Dispatch thread pool size")
    drain_timeout: float = Field(30.0, ge=0, description="Seconds stop() waits for in-flight dispatches")
    fetch_backoff_base: float = Field(1.0, gt=0, description="First retry delay after a failed fetch")
    fetch_backoff_max: float = Field(30.0, gt=0, description="Cap on the retry delay after failed fetches")
    log_level: str = Field("INFO")

    @field_validator("local_port")
    @classmethod
    def check_port(cls, value: int | None) -> int | None:
        if value is not None and not 0 < value < 65536:
            raise ValueError("Invalid Port")
        return value

    @field_validator("region")
    @classmethod
    def normalise_region(cls, value: str | None) -> str | None:
        """Accept the dashless form of a region name, e.g. uswest2 for us-west-2."""
        if value is None or value in known_sqs_regions():
            return value
        return {region.replace("-", ""): region for region in known_sqs_regions()}.get(value.lower(), value)

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {value}")
        return level

    @model_validator(mode="after")
    def check_target(self) -> "Settings":
        if not self.queue:
            raise ValueError("No queue was specified")
        if self.backend == "pgmq":
            if self.pgmq_dsn is None:
                raise ValueError("No DSN provided and PGMQ_DSN environment variable is not set")
            return self
        if self.local_port is not None:
            # a local port takes precedence over a region
            return self
        if self.region is None:
            raise ValueError("No local or region parameter was specified")
        if self.region not in known_sqs_regions():
            raise ValueError(f"Invalid region specified: {self.region}")
        return self

    @property
    def is_local(self) -> bool:
        return self.backend == "sqs" and self.local_port is not None

    @property
    def endpoint_url(self) -> str | None:
        """ElasticMQ endpoint in local mode, None to let boto3 pick the AWS endpoint."""
        if self.is_local:
            return f"http://{self.local_host}:{self.local_port}"
        return None

    @property
    def region_name(self) -> str | None:
        return SQS_LOCAL_REGION if self.is_local else self.region

    def describe_target(self) -> str:
        if self.backend == "pgmq":
            return f"pgmq queue {self.queue}"
        if self.is_local:
            return f"local queue {self.queue} at {self.endpoint_url}"
        return f"SQS queue {self.queue} in {self.region}"


def get_settings(**overrides: Any) -> Settings:
    """Return validated settings; keyword overrides (e.g. from CLI options) win over the environment.

    Raises:
        ConfigurationError: If the queue target is incomplete or a value is invalid.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as err:
        problems = "; ".join(_format_error(e) for e in err.errors())
        raise ConfigurationError(problems) from err


def _format_error(error: dict[str, Any]) -> str:
    message = str(error.get("msg", "invalid value")).removeprefix("Value error, ")
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {message}" if location else message
