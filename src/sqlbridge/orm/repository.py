from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .model import Model
    from .query import ModelQueryBuilder, Page

T = TypeVar("T", bound="Model")


class Repository(Generic[T]):
    """
    Data-access wrapper around a single model class.

    Subclass it to group the queries of one aggregate in one place, or
    instantiate it directly with the model class.

    Example:
        >>> users = Repository(User)
        >>> users.find_where(role=["admin", "owner"], active=True)
        [User(id=1, ...), User(id=3, ...)]
    """

    model_class: type[T] | None = None

    def __init__(self, model_class: type[T] | None = None) -> None:
        model_class = model_class or self.model_class
        if model_class is None:
            raise ValueError(f"{type(self).__name__} must be given a model class")
        self.model_class = model_class

    def query(self) -> ModelQueryBuilder[T]:
        return self.model_class.query()  # type: ignore[union-attr]

    def all(self, columns: str | Sequence[str] | None = None) -> list[T]:
        return self.query().get(columns)

    def find(self, id: Any, columns: str | Sequence[str] | None = None) -> T | None:
        return self.query().find(id, columns)

    def find_or_fail(self, id: Any, columns: str | Sequence[str] | None = None) -> T:
        return self.query().find_or_fail(id, columns)

    def find_by(self, field: str, value: Any, columns: str | Sequence[str] | None = None) -> T | None:
        return self.query().where(field, "=", value).first(columns)

    def find_all_by(self, field: str, value: Any, columns: str | Sequence[str] | None = None) -> list[T]:
        return self.query().where(field, "=", value).get(columns)

    def find_where(self, **criteria: Any) -> list[T]:
        """Models matching every criterion; list or tuple values become ``IN``."""
        query = self.query()
        for field, value in criteria.items():
            if isinstance(value, (list, tuple, set, frozenset)):
                query.where_in(field, list(value))
            else:
                query.where(field, "=", value)
        return query.get()

    def create(self, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> T:
        return self.model_class.create(attributes, **kwargs)  # type: ignore[union-attr]

    def update(self, id: Any, attributes: Mapping[str, Any]) -> T | None:
        """Fill and save the model with key ``id``; None if it does not exist."""
        model = self.find(id)
        if model is None:
            return None
        model.fill(attributes).save()
        return model

    def delete(self, id: Any) -> bool:
        model = self.find(id)
        if model is None:
            return False
        return model.delete()

    def paginate(
        self, per_page: int = 15, page: int = 1, columns: str | Sequence[str] | None = None
    ) -> Page[T]:
        query = self.query()
        if columns is not None:
            query.select(columns)
        return query.paginate(per_page, page)

    def count(self) -> int:
        return self.query().count()

    def exists(self, id: Any) -> bool:
        model = self.model_class
        return self.query().where(model.qualify_column(model.primary_key), "=", id).exists()  # type: ignore[union-attr]

    def first_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> T:
        return self.query().first_or_create(attributes, values)

    def update_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> T:
        return self.query().update_or_create(attributes, values)

    def with_(self, *relations: str) -> ModelQueryBuilder[T]:
        return self.query().with_(*relations)

    def order_by(self, column: str, direction: str = "asc") -> ModelQueryBuilder[T]:
        return self.query().order_by(column, direction)

    def latest(self, column: str = "created_at") -> ModelQueryBuilder[T]:
        return self.query().latest(column)

    def oldest(self, column: str = "created_at") -> ModelQueryBuilder[T]:
        return self.query().oldest(column)
