from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Generic, Self, TypeVar

if TYPE_CHECKING:
    from ...database.query import QueryBuilder
    from ..model import Model
    from ..query import ModelQueryBuilder

T = TypeVar("T", bound="Model")


def dictionary_key(value: Any) -> str:
    """Normalize a key value so ``1`` and ``"1"`` land in the same bucket."""
    return str(value)


def where_key(query: QueryBuilder, column: str, key: Any) -> QueryBuilder:
    """
    Constrain ``query`` to rows whose ``column`` equals ``key``.

    A missing key matches nothing. ``where(column, None)`` would compile to
    ``is null`` and pick up every orphaned row.
    """
    if key is None:
        return query.where_raw("0 = 1")
    return query.where(column, "=", key)


class Relation(Generic[T], ABC):
    """
    Abstract base class for model relations.

    A relation wraps a query against the related model that is constrained to
    the parent instance. For eager loading the same relation is reset to its
    unconstrained query and filtered with ``IN`` over every parent's key, so a
    whole list of parents is served by one query.
    """

    def __init__(self, query: ModelQueryBuilder[T], parent: Model) -> None:
        self.query = query
        self.parent = parent
        self.related: type[T] = query.get_model()

        self.prepare_query()
        self._unconstrained = self.query.clone()
        self.add_constraints()

    def prepare_query(self) -> None:
        """Adjust the base query before any key constraint is applied."""
        pass

    @abstractmethod
    def add_constraints(self) -> None:
        """Constrain the query to the parent instance."""
        pass

    @abstractmethod
    def add_eager_constraints(self, models: Sequence[Model]) -> None:
        """Constrain the query to every model in ``models``."""
        pass

    @abstractmethod
    def match(self, models: Sequence[Model], results: Sequence[T], relation: str) -> None:
        """Assign eagerly loaded ``results`` to their parents under ``relation``."""
        pass

    @abstractmethod
    def get_results(self) -> Any:
        """Load the relation value for the parent instance."""
        pass

    def reset_query(self) -> None:
        """Drop the parent constraint, keeping any base query adjustments."""
        self.query = self._unconstrained.clone()

    def get_eager(self) -> list[T]:
        return self.query.get()

    def get_query(self) -> ModelQueryBuilder[T]:
        return self.query

    def get_keys(self, models: Sequence[Model], key: str) -> list[Any]:
        """Distinct non-null values of ``key`` across ``models``, in order."""
        keys: dict[str, Any] = {}
        for model in models:
            value = model.get_attribute(key)
            if value is not None:
                keys.setdefault(dictionary_key(value), value)
        return list(keys.values())

    # Query chaining

    def where(self, *args: Any, **kwargs: Any) -> Self:
        self.query.where(*args, **kwargs)
        return self

    def or_where(self, *args: Any) -> Self:
        self.query.or_where(*args)
        return self

    def where_in(self, column: str, values: Sequence[Any]) -> Self:
        self.query.where_in(column, values)
        return self

    def order_by(self, column: str, direction: str = "asc") -> Self:
        self.query.order_by(column, direction)
        return self

    def latest(self, column: str = "created_at") -> Self:
        self.query.latest(column)
        return self

    def limit(self, value: int) -> Self:
        self.query.limit(value)
        return self

    def get(self) -> list[T]:
        return self.query.get()

    def first(self) -> T | None:
        return self.query.first()

    def count(self) -> int:
        return self.query.count()

    def exists(self) -> bool:
        return self.query.exists()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.parent.__class__.__name__} -> {self.related.__name__})"
