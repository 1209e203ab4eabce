"""Metadata provider plugins registered as package entry points."""

import logging
from importlib.metadata import entry_points

from trx_logger.errors import (
    InvalidMetadataProviderError,
    MetadataProviderNotFoundError,
)
from trx_logger.metadata.manifest import MetadataProviderManifest

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "trx_logger.metadata_providers"


def available_providers() -> list[str]:
    """Return the sorted keys of all registered metadata providers."""
    return sorted({entry.name for entry in entry_points(group=ENTRY_POINT_GROUP)})


def load_provider_manifest(key: str) -> MetadataProviderManifest:
    """Look up the metadata provider registered under ``key``.

    Providers register a :class:`MetadataProviderManifest` under the
    ``trx_logger.metadata_providers`` group, e.g. ``python`` or ``static``.

    Raises:
        MetadataProviderNotFoundError: If no provider uses the key
        InvalidMetadataProviderError: If the entry point is not a manifest

    """
    matches = entry_points(group=ENTRY_POINT_GROUP, name=key)
    if not matches:
        raise MetadataProviderNotFoundError(
            f"Metadata provider '{key}' not found. "
            f"Available providers: {available_providers()}"
        )

    entry = next(iter(matches))
    if len(matches) > 1:
        log.warning(
            "Metadata provider '%s' is registered %d times, using %s",
            key,
            len(matches),
            entry.value,
        )

    manifest = entry.load()
    if not isinstance(manifest, MetadataProviderManifest):
        raise InvalidMetadataProviderError(
            f"Metadata provider '{key}' ({entry.value}) is a "
            f"{type(manifest).__name__}, not a MetadataProviderManifest"
        )
    log.debug("Loaded metadata provider '%s' from %s", key, entry.value)
    return manifest
