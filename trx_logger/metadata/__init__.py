"""Metadata providers resolving declarative test metadata."""

from trx_logger.metadata.base import MetadataProvider, split_qualified_name
from trx_logger.metadata.manifest import MetadataProviderManifest
from trx_logger.metadata.python import PythonMetadataProvider
from trx_logger.metadata.static import StaticMetadataProvider

python_manifest = MetadataProviderManifest(provider_factory=PythonMetadataProvider)
static_manifest = MetadataProviderManifest(provider_factory=StaticMetadataProvider)

__all__ = [
    "MetadataProvider",
    "MetadataProviderManifest",
    "PythonMetadataProvider",
    "StaticMetadataProvider",
    "python_manifest",
    "split_qualified_name",
    "static_manifest",
]
