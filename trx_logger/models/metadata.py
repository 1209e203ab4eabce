"""Models for declarative test metadata not carried by results."""

from collections.abc import Sequence
from typing import Annotated

from pydantic import Field

from trx_logger.models.base import Model


CategoryLabels = Annotated[Sequence[str], Field(min_length=1)]


class TestProperty(Model):
    """Custom key/value property declared on a test method."""

    __test__ = False

    name: str
    value: str


class TestMetadata(Model):
    """Metadata resolved for a single test method."""

    __test__ = False

    description: str | None = Field(
        default=None, description="Description text, None when not declared"
    )
    properties: Sequence[TestProperty] = Field(default_factory=tuple)
    categories: Sequence[CategoryLabels] = Field(
        default_factory=tuple,
        description="Labels of each category declaration, in declaration order",
    )
    class_full_name: str = Field(..., description="Full name of the declaring class")
