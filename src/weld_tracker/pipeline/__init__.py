"""Frame and motion processing pipeline orchestration."""

from weld_tracker.pipeline.processor import EvaluationPipeline, ProcessedFrame

__all__ = ["EvaluationPipeline", "ProcessedFrame"]
