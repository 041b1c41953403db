from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Self

from .base import Relation, T, dictionary_key, where_key

if TYPE_CHECKING:
    from ...database.query import QueryBuilder
    from ..model import Model
    from ..query import ModelQueryBuilder

PIVOT_PREFIX = "pivot_"


class BelongsToMany(Relation[T]):
    """
    Many-to-many relation through a pivot table.

    Related rows are fetched with a join on the pivot table. Both pivot keys,
    plus any column named through :meth:`with_pivot`, are selected as
    ``pivot_<column>`` and moved into each related model's ``pivot`` relation
    (a plain dict) after hydration.

    Example:
        >>> user.roles().attach([1, 2], {"granted_by": "admin"})
        >>> user.roles().sync([2, 3])
        {'attached': [3], 'detached': [1]}
        >>> user.roles().first().get_relation("pivot")
        {'user_id': 1, 'role_id': 2}
    """

    def __init__(
        self,
        query: ModelQueryBuilder[T],
        parent: Model,
        table: str,
        foreign_pivot_key: str,
        related_pivot_key: str,
        parent_key: str,
        related_key: str,
    ) -> None:
        self.table = table
        self.foreign_pivot_key = foreign_pivot_key
        self.related_pivot_key = related_pivot_key
        self.parent_key = parent_key
        self.related_key = related_key
        self.pivot_columns: list[str] = []
        super().__init__(query, parent)

    def prepare_query(self) -> None:
        self.query.join(
            self.table,
            f"{self.related.get_table()}.{self.related_key}",
            "=",
            f"{self.table}.{self.related_pivot_key}",
        )

    def add_constraints(self) -> None:
        where_key(
            self.query, f"{self.table}.{self.foreign_pivot_key}", self.parent.get_attribute(self.parent_key)
        )

    def add_eager_constraints(self, models: Sequence[Model]) -> None:
        self.reset_query()
        self.query.where_in(
            f"{self.table}.{self.foreign_pivot_key}", self.get_keys(models, self.parent_key)
        )

    def with_pivot(self, *columns: str) -> Self:
        """Also select these pivot columns into each model's ``pivot`` dict."""
        for column in columns:
            if column not in self.pivot_columns:
                self.pivot_columns.append(column)
        return self

    def _select_columns(self) -> None:
        columns = [self.foreign_pivot_key, self.related_pivot_key]
        columns.extend(c for c in self.pivot_columns if c not in columns)
        self.query.select(
            f"{self.related.get_table()}.*",
            *(f"{self.table}.{column} as {PIVOT_PREFIX}{column}" for column in columns),
        )

    def _hydrate_pivot(self, models: Sequence[T]) -> None:
        for model in models:
            pivot = {}
            for key in list(model.get_attributes()):
                if key.startswith(PIVOT_PREFIX):
                    pivot[key.removeprefix(PIVOT_PREFIX)] = model.get_attributes()[key]
                    model.discard_attribute(key)
            model.set_relation("pivot", pivot)

    def get(self) -> list[T]:
        self._select_columns()
        models = self.query.get()
        self._hydrate_pivot(models)
        return models

    def first(self) -> T | None:
        self.query.limit(1)
        models = self.get()
        return models[0] if models else None

    def get_eager(self) -> list[T]:
        return self.get()

    def get_results(self) -> list[T]:
        if self.parent.get_attribute(self.parent_key) is None:
            return []
        return self.get()

    def match(self, models: Sequence[Model], results: Sequence[T], relation: str) -> None:
        dictionary: dict[str, list[T]] = {}
        for result in results:
            key = result.get_relation("pivot")[self.foreign_pivot_key]
            dictionary.setdefault(dictionary_key(key), []).append(result)

        for model in models:
            key = model.get_attribute(self.parent_key)
            matched = dictionary.get(dictionary_key(key), []) if key is not None else []
            model.set_relation(relation, list(matched))

    # Pivot table mutation

    def new_pivot_query(self) -> QueryBuilder:
        """Query on the pivot table constrained to the parent."""
        return where_key(
            self.query.connection.table(self.table),
            self.foreign_pivot_key,
            self.parent.get_attribute(self.parent_key),
        )

    def _parse_ids(self, ids: Any) -> list[Any]:
        from ..model import Model

        if isinstance(ids, Model):
            return [ids.get_attribute(self.related_key)]
        if isinstance(ids, Mapping):
            return list(ids.keys())
        if isinstance(ids, Iterable) and not isinstance(ids, (str, bytes)):
            return [
                item.get_attribute(self.related_key) if isinstance(item, Model) else item
                for item in ids
            ]
        return [ids]

    def _parse_ids_with_attributes(self, ids: Any) -> dict[Any, dict[str, Any]]:
        if isinstance(ids, Mapping):
            return {key: dict(attributes or {}) for key, attributes in ids.items()}
        return {key: {} for key in self._parse_ids(ids)}

    def attach(self, ids: Any, attributes: Mapping[str, Any] | None = None) -> bool:
        """
        Insert pivot rows linking the parent to ``ids``.

        ``ids`` may be a key, a model, a list of either, or a mapping of
        key to per-row pivot attributes. ``attributes`` is applied to every
        row.
        """
        parent_key = self.parent.get_attribute(self.parent_key)
        records = [
            {
                self.foreign_pivot_key: parent_key,
                self.related_pivot_key: key,
                **(attributes or {}),
                **extra,
            }
            for key, extra in self._parse_ids_with_attributes(ids).items()
        ]
        return self.query.connection.table(self.table).insert(records)

    def detach(self, ids: Any = None) -> int:
        """Delete pivot rows for ``ids``, or every row of the parent when None."""
        query = self.new_pivot_query()
        if ids is not None:
            ids = self._parse_ids(ids)
            if not ids:
                return 0
            query.where_in(self.related_pivot_key, ids)
        return query.delete()

    def _current_ids(self) -> list[Any]:
        return self.new_pivot_query().pluck(self.related_pivot_key)

    def sync(self, ids: Any, detaching: bool = True) -> dict[str, list[Any]]:
        """
        Make the pivot rows match ``ids`` exactly.

        Extra pivot attributes are written for newly attached ids only; rows
        that stay attached keep their existing pivot values.
        """
        records = self._parse_ids_with_attributes(ids)
        wanted = {dictionary_key(key) for key in records}
        current = self._current_ids()
        existing = {dictionary_key(key) for key in current}

        detach = [key for key in current if dictionary_key(key) not in wanted]
        if detaching and detach:
            self.detach(detach)

        attach = {key: extra for key, extra in records.items() if dictionary_key(key) not in existing}
        if attach:
            self.attach(attach)

        return {"attached": list(attach), "detached": detach if detaching else []}

    def toggle(self, ids: Any) -> dict[str, list[Any]]:
        """Detach ids that are attached and attach the rest."""
        records = self._parse_ids_with_attributes(ids)
        existing = {dictionary_key(key) for key in self._current_ids()}

        detach = [key for key in records if dictionary_key(key) in existing]
        if detach:
            self.detach(detach)

        attach = {key: extra for key, extra in records.items() if dictionary_key(key) not in existing}
        if attach:
            self.attach(attach)

        return {"attached": list(attach), "detached": detach}

    def update_existing_pivot(self, id: Any, attributes: Mapping[str, Any]) -> int:
        return self.new_pivot_query().where(self.related_pivot_key, "=", id).update(attributes)
