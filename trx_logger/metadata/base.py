"""Abstract base class for test metadata providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from trx_logger.errors import MetadataResolutionError
from trx_logger.models.metadata import TestMetadata


def split_qualified_name(qualified_name: str, source: str) -> tuple[str, str]:
    """Split a qualified test name into its class and method parts.

    Raises:
        MetadataResolutionError: If either part is empty

    """
    class_name, _, method_name = qualified_name.rpartition(".")
    if not class_name or not method_name:
        raise MetadataResolutionError(
            qualified_name, source, "expected '<class>.<method>'"
        )
    return class_name, method_name


@dataclass(frozen=True, kw_only=True)
class MetadataProvider(ABC):
    """Abstract base for metadata providers.

    A provider looks up the declarative metadata of a test method that the
    host's result objects do not carry. Providers may cache loaded sources, so
    a new instance is created for every report.
    """

    @abstractmethod
    def resolve(self, qualified_name: str, source: str) -> TestMetadata:
        """Resolve metadata for a test.

        Args:
            qualified_name: Dot-separated class and method name
            source: Source the test was loaded from

        Returns:
            Metadata of the test method

        Raises:
            MetadataResolutionError: If the class or method cannot be located

        """
