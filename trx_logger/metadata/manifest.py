"""Metadata provider manifest definition for the plugin system."""

from collections.abc import Callable
from dataclasses import dataclass

from trx_logger.metadata.base import MetadataProvider


@dataclass(frozen=True, kw_only=True)
class MetadataProviderManifest:
    """Manifest describing a metadata provider plugin.

    The factory is called once per report so that provider caches never
    outlive a single report generation.
    """

    provider_factory: Callable[[], MetadataProvider]
