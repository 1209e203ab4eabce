"""Decorators declaring report metadata on test methods.

The metadata is stored as attributes on the decorated function and read back
by :class:`trx_logger.metadata.python.PythonMetadataProvider`. Declarations are
kept in source order, top to bottom::

    class CheckoutTests:
        @description("Pays with a stored card")
        @custom_property("Owner", "payments")
        @category("Smoke", "Payments")
        def test_pay(self): ...
"""

from collections.abc import Callable
from typing import Any, TypeAlias

DESCRIPTION_ATTR = "__trx_description__"
PROPERTIES_ATTR = "__trx_properties__"
CATEGORIES_ATTR = "__trx_categories__"

Decorator: TypeAlias = Callable[[Callable[..., Any]], Callable[..., Any]]


def _prepend(func: Callable[..., Any], attr: str, value: object) -> None:
    # Decorators apply bottom-up, so prepending restores source order.
    existing: list[object] = list(getattr(func, attr, ()))
    setattr(func, attr, [value, *existing])


def description(text: str) -> Decorator:
    """Attach a description to a test method."""

    def decorate(func: Callable[..., Any]) -> Callable[..., Any]:
        setattr(func, DESCRIPTION_ATTR, text)
        return func

    return decorate


def custom_property(name: str, value: str) -> Decorator:
    """Declare a key/value property on a test method. Repeatable."""

    def decorate(func: Callable[..., Any]) -> Callable[..., Any]:
        _prepend(func, PROPERTIES_ATTR, (name, value))
        return func

    return decorate


def category(*labels: str) -> Decorator:
    """Declare a test category. Repeatable.

    Only the first label of each declaration is written to reports.
    """
    if not labels:
        raise ValueError("category() requires at least one label")

    def decorate(func: Callable[..., Any]) -> Callable[..., Any]:
        _prepend(func, CATEGORIES_ATTR, tuple(labels))
        return func

    return decorate
