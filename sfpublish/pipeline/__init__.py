"""Pipeline orchestration for build-completion triggers."""

from sfpublish.pipeline.orchestrator import PipelineOrchestrator

__all__ = ["PipelineOrchestrator"]
