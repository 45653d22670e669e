"""Output sinks for exporting model results."""

from loan_mart.sinks.console import ConsoleSink
from loan_mart.sinks.json_file import JsonFileSink
from loan_mart.sinks.kafka import KafkaSink, ProducerStats
from loan_mart.sinks.postgres import PostgresSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink", "PostgresSink", "ProducerStats"]
