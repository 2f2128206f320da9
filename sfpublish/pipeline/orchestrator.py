"""Pipeline orchestrator — one publish run per build-completion trigger.

Pipeline:
  1. PathMapper.resolve_all()       — every configured resource → file list
  2. ResourcePackager.package_all() — every file list → zip Artifact.
     A ConfigurationError here ends the run before any network call.
  3. PublishClient.authenticate()   — fresh client and session per run
  4. PublishClient.publish_all()    — one batch upsert for all artifacts
  5. done() on success, done(exc) with the first error otherwise

All artifacts are built before login, so nothing is sent unless every
resource packaged cleanly.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import structlog

from sfpublish.core.config import PublisherConfig, Settings, build_config, get_settings, load_config
from sfpublish.core.logging import bind_run_id, configure_structlog, reset_run_id
from sfpublish.packaging.bundler import ResourcePackager
from sfpublish.packaging.mapper import PathMapper
from sfpublish.publish.client import PublishClient
from sfpublish.publish.transport import MetadataTransport
from sfpublish.publish.types import PublishSuccess

logger = structlog.get_logger(__name__)

# done() signals success, done(exc) signals failure
DoneCallback = Callable[..., None]
TransportFactory = Callable[[PublisherConfig], MetadataTransport]


class PipelineOrchestrator:
    """Wires mapper, packager and publish client together."""

    def __init__(
        self,
        config: PublisherConfig,
        transport_factory: Optional[TransportFactory] = None,
        mapper: Optional[PathMapper] = None,
        packager: Optional[ResourcePackager] = None,
    ):
        self.config = config
        self._transport_factory = transport_factory
        self.mapper = mapper or PathMapper()
        self.packager = packager or ResourcePackager(debug=config.debug)

    @classmethod
    def from_options(cls, options: Mapping[str, Any], **kwargs: Any) -> "PipelineOrchestrator":
        """Validate raw options and build an orchestrator.

        Raises ConfigurationError before any I/O when the options are invalid.
        """
        return cls(build_config(options), **kwargs)

    @classmethod
    def from_settings(
        cls,
        config_file: Optional[Path] = None,
        settings: Optional[Settings] = None,
        **kwargs: Any,
    ) -> "PipelineOrchestrator":
        """Load a TOML config, then configure logging for it.

        Debug logging is on when either the environment or the file asks for it.
        """
        settings = settings or get_settings()
        config = load_config(config_file, settings)
        configure_structlog(debug=settings.debug or config.debug, json_output=settings.log_json)
        return cls(config, **kwargs)

    async def run(self) -> PublishSuccess:
        """Execute one full run and return the publish outcome.

        Raises:
            ConfigurationError: a resource matched nothing (before login).
            AuthenticationError: the login exchange failed.
            PublishError: the upsert failed or rejected any record.
        """
        token = bind_run_id(uuid.uuid4().hex[:12])
        try:
            resources = self.mapper.resolve_all(self.config.resources)
            artifacts = self.packager.package_all(resources)

            if not artifacts:
                logger.warning("No resources configured; nothing to upload")
                return PublishSuccess()

            client = self._new_client()
            await client.authenticate()
            outcome = await client.publish_all(artifacts)

            logger.info("Upload completed!", resources=[a.full_name for a in artifacts])
            return outcome
        finally:
            reset_run_id(token)

    async def on_build_complete(self, done: DoneCallback) -> None:
        """Run once and report through `done`, called exactly once."""
        try:
            await self.run()
        except BaseException as exc:
            logger.error("Publish run failed", error=str(exc), error_type=type(exc).__name__)
            done(exc)
            # cancellation and interrupts still propagate once reported
            if not isinstance(exc, Exception):
                raise
            return
        done()

    def trigger(self, done: DoneCallback) -> None:
        """Blocking entry point for build hooks without an event loop."""
        asyncio.run(self.on_build_complete(done))

    def _new_client(self) -> PublishClient:
        transport = self._transport_factory(self.config) if self._transport_factory else None
        return PublishClient(self.config.salesforce, transport=transport)
