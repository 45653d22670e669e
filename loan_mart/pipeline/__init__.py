"""Model graph, registry and runner."""

from loan_mart.pipeline.graph import SOURCES, ModelGraph, ModelNode
from loan_mart.pipeline.registry import default_graph, default_models
from loan_mart.pipeline.runner import ModelResult, PipelineRunner, RunResult
from loan_mart.pipeline.session import run_pipeline

__all__ = [
    "SOURCES",
    "ModelGraph",
    "ModelNode",
    "ModelResult",
    "PipelineRunner",
    "RunResult",
    "default_graph",
    "default_models",
    "run_pipeline",
]
