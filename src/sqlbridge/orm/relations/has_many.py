from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from .base import T, dictionary_key
from .has_one_or_many import HasOneOrMany

if TYPE_CHECKING:
    from ..model import Model


class HasMany(HasOneOrMany[T]):
    def match(self, models: Sequence[Model], results: Sequence[T], relation: str) -> None:
        foreign_key = self.get_foreign_key_name()
        dictionary: dict[str, list[T]] = {}
        for result in results:
            dictionary.setdefault(dictionary_key(result.get_attribute(foreign_key)), []).append(result)

        for model in models:
            key = model.get_attribute(self.local_key)
            matched = dictionary.get(dictionary_key(key), []) if key is not None else []
            model.set_relation(relation, list(matched))

    def get_results(self) -> list[T]:
        if self.get_parent_key() is None:
            return []
        return self.query.get()
