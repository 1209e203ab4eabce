"""Metadata provider introspecting Python test modules."""

import importlib
import importlib.util
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

from pydantic import ValidationError

from trx_logger.errors import MetadataResolutionError
from trx_logger.markers import CATEGORIES_ATTR, DESCRIPTION_ATTR, PROPERTIES_ATTR
from trx_logger.metadata.base import MetadataProvider, split_qualified_name
from trx_logger.models.metadata import TestMetadata, TestProperty

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class PythonMetadataProvider(MetadataProvider):
    """Reads metadata declared with :mod:`trx_logger.markers`.

    Sources are either paths to ``.py`` files or importable module names.
    Each source is loaded at most once per provider instance. Loading executes
    module-level code of the test module.
    """

    _modules: dict[str, ModuleType] = field(
        default_factory=dict, init=False, repr=False
    )

    def resolve(self, qualified_name: str, source: str) -> TestMetadata:
        """Resolve metadata for a test method."""
        class_name, method_name = split_qualified_name(qualified_name, source)
        module = self._load(source, qualified_name)
        cls = _find_class(module, class_name)
        if cls is None:
            raise MetadataResolutionError(
                qualified_name, source, f"class '{class_name}' not found"
            )

        method = getattr(cls, method_name, None)
        if method is None or not callable(method):
            raise MetadataResolutionError(
                qualified_name, source, f"method '{method_name}' not found"
            )

        try:
            return TestMetadata(
                description=getattr(method, DESCRIPTION_ATTR, None),
                properties=tuple(
                    TestProperty(name=name, value=value)
                    for name, value in getattr(method, PROPERTIES_ATTR, ())
                ),
                categories=tuple(getattr(method, CATEGORIES_ATTR, ())),
                class_full_name=f"{cls.__module__}.{cls.__qualname__}",
            )
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise MetadataResolutionError(
                qualified_name, source, f"invalid metadata ({location}: {first['msg']})"
            ) from e

    def _load(self, source: str, qualified_name: str) -> ModuleType:
        if (module := self._modules.get(source)) is not None:
            return module

        log.debug("Loading test source: %s", source)
        try:
            if source.endswith(".py"):
                module = _load_file(Path(source))
            else:
                module = importlib.import_module(source)
        except Exception as e:
            raise MetadataResolutionError(
                qualified_name, source, f"cannot load source ({e})"
            ) from e

        self._modules[source] = module
        return module


def _load_file(path: Path) -> ModuleType:
    """Execute a Python file as a module without keeping it in sys.modules."""
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"No loader for {path}")

    module = importlib.util.module_from_spec(spec)
    previous = sys.modules.get(spec.name)
    # Class decorators such as dataclass look the module up while executing.
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    finally:
        if previous is None:
            sys.modules.pop(spec.name, None)
        else:
            sys.modules[spec.name] = previous
    return module


def _find_class(module: ModuleType, class_name: str) -> type | None:
    """Find a class by dotted path, dropping leading package components."""
    parts = class_name.split(".")
    for start in range(len(parts)):
        target: Any = module
        for part in parts[start:]:
            target = getattr(target, part, None)
            if target is None:
                break
        if isinstance(target, type):
            return target
    return None
