"""sfpublish — zip build output and publish it as Salesforce static resources.

Public API:
    build_config(options) -> PublisherConfig
    load_config(path, settings) -> PublisherConfig
    PipelineOrchestrator(config).on_build_complete(done)
"""

from sfpublish.core.config import PublisherConfig, ResourceSpec, build_config, load_config
from sfpublish.errors import (
    AuthenticationError,
    ConfigurationError,
    NotAuthenticatedError,
    PublishError,
    TransportError,
)
from sfpublish.pipeline.orchestrator import PipelineOrchestrator

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "NotAuthenticatedError",
    "PipelineOrchestrator",
    "PublishError",
    "PublisherConfig",
    "ResourceSpec",
    "TransportError",
    "build_config",
    "load_config",
]
