from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .base import Relation, T, where_key

if TYPE_CHECKING:
    from ..model import Model
    from ..query import ModelQueryBuilder


class HasOneOrMany(Relation[T]):
    """Shared behaviour of relations where the related table holds the key."""

    def __init__(
        self,
        query: ModelQueryBuilder[T],
        parent: Model,
        foreign_key: str,
        local_key: str,
    ) -> None:
        # foreign_key is qualified with the related table: "posts.user_id"
        self.foreign_key = foreign_key
        self.local_key = local_key
        super().__init__(query, parent)

    def get_foreign_key_name(self) -> str:
        return self.foreign_key.split(".")[-1]

    def get_parent_key(self) -> Any:
        return self.parent.get_attribute(self.local_key)

    def add_constraints(self) -> None:
        where_key(self.query, self.foreign_key, self.get_parent_key())

    def add_eager_constraints(self, models: Sequence[Model]) -> None:
        self.reset_query()
        self.query.where_in(self.foreign_key, self.get_keys(models, self.local_key))

    def save(self, model: T) -> T:
        """Set the foreign key on ``model`` and persist it."""
        model.set_attribute(self.get_foreign_key_name(), self.get_parent_key())
        model.save()
        return model

    def save_many(self, models: Sequence[T]) -> list[T]:
        return [self.save(model) for model in models]

    def create(self, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> T:
        model = self.related()
        model.force_fill({**(attributes or {}), **kwargs})
        return self.save(model)

    def create_many(self, records: Sequence[Mapping[str, Any]]) -> list[T]:
        return [self.create(record) for record in records]
