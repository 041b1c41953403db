from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from .base import Relation, T, dictionary_key, where_key

if TYPE_CHECKING:
    from ..model import Model
    from ..query import ModelQueryBuilder


class BelongsTo(Relation[T]):
    """Inverse side of a one-to-one or one-to-many: the child holds the key."""

    def __init__(
        self,
        query: ModelQueryBuilder[T],
        child: Model,
        foreign_key: str,
        owner_key: str,
    ) -> None:
        self.foreign_key = foreign_key
        self.owner_key = owner_key
        super().__init__(query, child)

    def _qualified_owner_key(self) -> str:
        return f"{self.related.get_table()}.{self.owner_key}"

    def add_constraints(self) -> None:
        where_key(self.query, self._qualified_owner_key(), self.parent.get_attribute(self.foreign_key))

    def add_eager_constraints(self, models: Sequence[Model]) -> None:
        self.reset_query()
        self.query.where_in(self._qualified_owner_key(), self.get_keys(models, self.foreign_key))

    def match(self, models: Sequence[Model], results: Sequence[T], relation: str) -> None:
        dictionary = {dictionary_key(result.get_attribute(self.owner_key)): result for result in results}

        for model in models:
            key = model.get_attribute(self.foreign_key)
            if key is not None and dictionary_key(key) in dictionary:
                model.set_relation(relation, dictionary[dictionary_key(key)])

    def get_results(self) -> T | None:
        if self.parent.get_attribute(self.foreign_key) is None:
            return None
        return self.query.first()

    def associate(self, model: Model | Any, relation: str) -> Model:
        """Point the child at ``model`` (or a raw key) and cache it as ``relation``."""
        from ..model import Model

        if isinstance(model, Model):
            self.parent.set_attribute(self.foreign_key, model.get_attribute(self.owner_key))
            self.parent.set_relation(relation, model)
        else:
            self.parent.set_attribute(self.foreign_key, model)
            self.parent.unset_relation(relation)
        return self.parent

    def dissociate(self, relation: str) -> Model:
        self.parent.set_attribute(self.foreign_key, None)
        self.parent.set_relation(relation, None)
        return self.parent
