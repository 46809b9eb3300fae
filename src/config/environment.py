"""Layered property environment.

Properties live in an ordered list of named sources. Each source is a flat
mapping of dotted keys (``header.enricher.overwrite``) to values. Lookups walk
the sources first-to-last and the first source holding a key wins, so a
source added with ``add_first`` overrides everything already present and one
added with ``add_last`` only fills gaps.

Startup hooks (function binding, content-type defaults) write into the
environment before message processing starts; ``freeze()`` then makes it
read-only for the rest of the process lifetime.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class PropertySource:
    """A named, flat mapping of dotted property keys."""

    name: str
    properties: Dict[str, Any] = field(default_factory=dict)

    def __contains__(self, key: str) -> bool:
        return key in self.properties


def _nest(flat: Mapping[str, Any]) -> Dict[str, Any]:
    """Expand dotted keys into nested dicts.

    Keys are applied shortest-first so a deeper key (``a.b``) replaces a
    scalar set at its parent (``a``).
    """
    nested: Dict[str, Any] = {}
    for key in sorted(flat, key=lambda k: k.count(".")):
        parts = key.split(".")
        node = nested
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = flat[key]
    return nested


class Environment:
    """Ordered collection of property sources with first-wins lookup."""

    def __init__(self, sources: Optional[List[PropertySource]] = None):
        self._sources: List[PropertySource] = list(sources or [])
        self._frozen = False

    def __repr__(self) -> str:
        names = [source.name for source in self._sources]
        return f"Environment(sources={names}, frozen={self._frozen})"

    def __contains__(self, key: str) -> bool:
        return self.contains_property(key)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def source_names(self) -> List[str]:
        return [source.name for source in self._sources]

    def iter_sources(self) -> Iterator[PropertySource]:
        return iter(self._sources)

    def _check_writable(self, name: str) -> None:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot add property source '{name}': environment is frozen",
                context={"property_source": name},
            )

    def _remove(self, name: str) -> None:
        self._sources = [source for source in self._sources if source.name != name]

    def add_first(self, name: str, properties: Mapping[str, Any]) -> None:
        """Add a source with the highest priority, replacing any source of the same name."""
        self._check_writable(name)
        self._remove(name)
        self._sources.insert(0, PropertySource(name, dict(properties)))
        logger.debug("Added property source first: %s", name)

    def add_last(self, name: str, properties: Mapping[str, Any]) -> None:
        """Add a source with the lowest priority, replacing any source of the same name."""
        self._check_writable(name)
        self._remove(name)
        self._sources.append(PropertySource(name, dict(properties)))
        logger.debug("Added property source last: %s", name)

    def freeze(self) -> None:
        """Make the environment read-only."""
        self._frozen = True

    def contains_property(self, key: str) -> bool:
        return any(key in source for source in self._sources)

    def get_property(self, key: str, default: Any = None) -> Any:
        for source in self._sources:
            if key in source:
                return source.properties[key]
        return default

    def require_property(self, key: str) -> Any:
        if not self.contains_property(key):
            raise ConfigurationError(
                f"Required property '{key}' is not set",
                context={"property": key},
            )
        return self.get_property(key)

    def property_names(self) -> List[str]:
        seen: Dict[str, None] = {}
        for source in self._sources:
            for key in source.properties:
                seen.setdefault(key, None)
        return list(seen)

    def get_subproperties(self, prefix: str) -> Dict[str, Any]:
        """Return every property under ``prefix.`` with the prefix stripped.

        Higher-priority sources win for duplicate keys.
        """
        marker = prefix.rstrip(".") + "." if prefix else ""
        result: Dict[str, Any] = {}
        for source in reversed(self._sources):
            for key, value in source.properties.items():
                if key.startswith(marker):
                    result[key[len(marker):]] = value
        return result

    def get_nested(self, prefix: str) -> Dict[str, Any]:
        """Return the properties under ``prefix`` as a nested dict."""
        return _nest(self.get_subproperties(prefix))

    def bind(self, prefix: str, model_cls: Type[ModelT]) -> ModelT:
        """Validate the properties under ``prefix`` into a pydantic model.

        Raises:
            ConfigurationError: If the properties do not validate
        """
        data = self.get_nested(prefix)
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid '{prefix}' properties: {e}",
                cause=e,
                context={"property": prefix},
            ) from e


__all__ = ["Environment", "PropertySource"]
