"""Configuration management for loan-mart."""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from loan_mart.exceptions import ConfigurationError

ENGINES = ("memory", "postgres")


@dataclass
class KafkaConfig:
    """Producer settings for exporting models to Kafka.

    Model rows are published to ``<topic_prefix>.<model>``. With ``acks=all``
    the producer is idempotent, so a retried batch does not duplicate rows.
    """

    bootstrap_servers: str = "localhost:9092"
    topic_prefix: str = "analytics.loans"
    client_id: str = "loan-mart"
    acks: str = "all"
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "client.id": self.client_id,
            "acks": self.acks,
            "enable.idempotence": self.acks == "all",
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "warehouse"
    user: str = "postgres"
    password: str = "postgres"
    schema: str = "analytics"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class ScenarioConfig:
    """Configuration for synthetic loan portfolio generation."""

    num_loans: int = 100
    start_month: date = field(default_factory=lambda: date(2024, 1, 1))
    num_months: int = 12
    payments_per_loan: int = 6
    unknown_type_rate: float = 0.0
    orphan_payment_rate: float = 0.0


@dataclass
class LoanMartConfig:
    """Main configuration for loan-mart."""

    engine: str = "memory"
    seeds_dir: Path = field(default_factory=lambda: Path("seeds"))
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    scenario: ScenarioConfig | None = None
    run_quality_checks: bool = True
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"

    def __post_init__(self) -> None:
        if self.engine not in ENGINES:
            raise ConfigurationError(
                f"Unknown engine {self.engine!r}, expected one of {', '.join(ENGINES)}"
            )
        if self.log_format not in ("standard", "json"):
            raise ConfigurationError(f"Unknown log format {self.log_format!r}")

    @classmethod
    def from_env(cls) -> "LoanMartConfig":
        """Create config from environment variables."""
        import os

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "warehouse"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            schema=os.getenv("POSTGRES_SCHEMA", "analytics"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            topic_prefix=os.getenv("KAFKA_TOPIC_PREFIX", "analytics.loans"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            engine=os.getenv("LOAN_MART_ENGINE", "memory"),
            seeds_dir=Path(os.getenv("SEEDS_DIR", "seeds")),
            postgres=postgres,
            kafka=kafka,
            output=output,
            run_quality_checks=os.getenv("RUN_QUALITY_CHECKS", "true").lower() == "true",
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
