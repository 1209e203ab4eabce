"""Metadata provider backed by an in-memory mapping."""

from collections.abc import Mapping
from dataclasses import dataclass, field

from trx_logger.metadata.base import MetadataProvider, split_qualified_name
from trx_logger.models.metadata import TestMetadata


@dataclass(frozen=True, kw_only=True)
class StaticMetadataProvider(MetadataProvider):
    """Resolves metadata from a mapping keyed by qualified name.

    Unknown tests resolve to empty metadata declared on their class part.
    """

    entries: Mapping[str, TestMetadata] = field(default_factory=dict)

    def resolve(self, qualified_name: str, source: str) -> TestMetadata:
        """Return the mapped metadata or empty metadata for the test."""
        class_name, _ = split_qualified_name(qualified_name, source)
        if (metadata := self.entries.get(qualified_name)) is not None:
            return metadata
        return TestMetadata(class_full_name=class_name)
