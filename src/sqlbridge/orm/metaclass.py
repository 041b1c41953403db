from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, TypeVar

from .casts import Cast

F = TypeVar("F", bound=Callable[..., Any])

_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    """``UserProfile`` -> ``user_profile``."""
    return _SNAKE_BOUNDARY.sub("_", name).lower()


def relationship(method: F) -> F:
    """Mark a model method as a relation so its value can be lazy loaded."""
    method.__relationship__ = True  # type: ignore[attr-defined]
    return method


class ModelMetaclass(type):
    """Metaclass for ORM models that resolves table and relation metadata."""

    registry: dict[str, type[Any]] = {}

    def __new__(
        mcs,
        name: str,
        bases: tuple[type[Any], ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ) -> ModelMetaclass:
        cls = super().__new__(mcs, name, bases, namespace)

        # Relation names from base classes, then from the current class
        relations: set[str] = set()
        for base in bases:
            if hasattr(base, "_relation_names"):
                relations.update(base._relation_names)  # type: ignore[attr-defined]

        for attr_name, attr_value in namespace.items():
            if getattr(attr_value, "__relationship__", False):
                relations.add(attr_name)

        cls._relation_names = frozenset(relations)  # type: ignore[attr-defined]

        settings = namespace.get("Settings")
        table = kwargs.get("table") or getattr(settings, "table_name", None)
        cls._table = table or snake_case(name) + "s"  # type: ignore[attr-defined]

        try:
            cls.casts = {  # type: ignore[attr-defined]
                key: Cast(value) for key, value in getattr(cls, "casts", {}).items()
            }
        except ValueError as exc:
            raise ValueError(f"Model {name} declares an unknown cast: {exc}") from None

        if not name.startswith("_"):
            mcs.registry[name] = cls

        return cls  # type: ignore[return-value]

    @classmethod
    def resolve(mcs, model: str | type[Any]) -> type[Any]:
        """Return a model class given the class itself or its name."""
        if isinstance(model, str):
            try:
                return mcs.registry[model]
            except KeyError:
                raise ValueError(f"Unknown model: {model}") from None
        return model
