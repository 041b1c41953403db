from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from .base import T, dictionary_key
from .has_one_or_many import HasOneOrMany

if TYPE_CHECKING:
    from ..model import Model


class HasOne(HasOneOrMany[T]):
    def match(self, models: Sequence[Model], results: Sequence[T], relation: str) -> None:
        # Later rows overwrite earlier ones for the same key.
        foreign_key = self.get_foreign_key_name()
        dictionary = {dictionary_key(result.get_attribute(foreign_key)): result for result in results}

        for model in models:
            key = model.get_attribute(self.local_key)
            if key is not None and dictionary_key(key) in dictionary:
                model.set_relation(relation, dictionary[dictionary_key(key)])

    def get_results(self) -> T | None:
        if self.get_parent_key() is None:
            return None
        return self.query.first()
