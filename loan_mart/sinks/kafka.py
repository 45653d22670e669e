"""Kafka sink for publishing model outputs."""

import logging
import time
from dataclasses import dataclass, is_dataclass
from typing import Any

from confluent_kafka import Producer

from loan_mart.config import KafkaConfig
from loan_mart.exceptions import SinkError
from loan_mart.sinks.serialization import to_json

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    start_time: float | None = None
    end_time: float | None = None

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0

    @property
    def throughput(self) -> float:
        """Calculate records per second achieved."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        duration = self.end_time - self.start_time
        return self.sent / duration if duration > 0 else 0.0


class KafkaSink:
    """Publish model rows as JSON messages, one topic per model.

    Topics are named ``<topic_prefix>.<table>``. Messages are keyed by the
    model's key column so all rows of one loan (or one month) land on the
    same partition.
    """

    # Model to key field mapping
    KEY_FIELDS = {
        "stg_loans": "loan_id",
        "stg_loan_payments": "loan_id",
        "fct_loan_details": "loan_id",
        "agg_monthly_loans": "month",
    }

    def __init__(self, config: KafkaConfig | str) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = Producer(config.to_dict())
        self.stats = ProducerStats()

    def topic_for(self, table: str) -> str:
        return f"{self.config.topic_prefix}.{table}"

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def _get_key(self, table: str, record: Any) -> str | None:
        """Extract message key from record based on model."""
        key_field = self.KEY_FIELDS.get(table)
        if not key_field:
            return None

        if is_dataclass(record):
            value = getattr(record, key_field, None)
        elif isinstance(record, dict):
            value = record.get(key_field)
        else:
            value = None
        return None if value is None else str(value)

    def send(self, table: str, record: Any, key: str | None = None) -> None:
        """Send a single record to the model's topic."""
        if key is None:
            key = self._get_key(table, record)

        try:
            self.producer.produce(
                topic=self.topic_for(table),
                key=key.encode("utf-8") if key else None,
                value=to_json(record).encode("utf-8"),
                callback=self._delivery_callback,
            )
        except BufferError as exc:
            raise SinkError(f"Producer queue full while sending to {self.topic_for(table)}") from exc
        self.stats.sent += 1
        self.producer.poll(0)

    def write_batch(self, table: str, records: list[Any]) -> None:
        """Write a batch of records and wait for delivery."""
        topic = self.topic_for(table)
        logger.info("Writing batch to %s: %d records", topic, len(records))

        failed_before = self.stats.failed
        self.stats.start_time = time.time()
        for record in records:
            self.send(table, record)

        self.flush()
        self.stats.end_time = time.time()

        logger.info(
            "Batch complete: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
        if self.stats.failed > failed_before:
            raise SinkError(f"{self.stats.failed - failed_before} message(s) to {topic} were not delivered")

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        remaining = self.producer.flush(timeout)
        if remaining:
            raise SinkError(f"{remaining} message(s) still queued after {timeout}s")

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
