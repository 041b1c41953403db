"""Query builder that hydrates rows into models and eager loads relations."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, Self, TypeVar

from ..database.query import QueryBuilder
from ..exceptions import NotFoundError

if TYPE_CHECKING:
    from ..database.connection import Connection
    from .model import Model

T = TypeVar("T", bound="Model")

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Page(Generic[T]):
    """One page of results plus the numbers needed to render pagination."""

    data: list[T]
    total: int
    per_page: int
    current_page: int
    last_page: int
    from_: int | None
    to: int | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [model.to_dict() for model in self.data],
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.current_page,
            "last_page": self.last_page,
            "from": self.from_,
            "to": self.to,
        }


def _parse_relations(relations: Sequence[str | Sequence[str]]) -> dict[str, list[str]]:
    """``["posts.comments", "profile"]`` -> ``{"posts": ["comments"], "profile": []}``."""
    parsed: dict[str, list[str]] = {}
    for relation in relations:
        names = [relation] if isinstance(relation, str) else list(relation)
        for name in names:
            head, _, rest = name.partition(".")
            nested = parsed.setdefault(head, [])
            if rest and rest not in nested:
                nested.append(rest)
    return parsed


class ModelQueryBuilder(QueryBuilder, Generic[T]):
    """
    QueryBuilder whose reads return model instances.

    Every row is hydrated before any relation queued with :meth:`with_` is
    loaded; each relation then costs exactly one extra query no matter how
    many parents were returned.

    Example:
        >>> users = User.query().with_("posts.comments", "profile").where("active", True).get()
        >>> users[0].get_attribute("posts")
        [Post(id=1, ...), Post(id=4, ...)]
    """

    def __init__(self, connection: Connection, model: type[T] | None = None) -> None:
        super().__init__(connection)
        self._model: type[T] | None = None
        self._eager_load: dict[str, list[str]] = {}
        if model is not None:
            self.set_model(model)

    def set_model(self, model: type[T]) -> Self:
        self._model = model
        self.from_(model.get_table())
        return self

    def get_model(self) -> type[T]:
        if self._model is None:
            raise ValueError("No model set on this query")
        return self._model

    def with_(self, *relations: str | Sequence[str]) -> Self:
        """Queue relations to eager load; dotted names load nested relations."""
        for name, nested in _parse_relations(relations).items():
            queued = self._eager_load.setdefault(name, [])
            queued.extend(n for n in nested if n not in queued)
        return self

    def get_eager_loads(self) -> dict[str, list[str]]:
        return {name: list(nested) for name, nested in self._eager_load.items()}

    # Reads

    def get(self, columns: str | Sequence[str] | None = None) -> list[T]:
        model = self.get_model()
        models = [model.hydrate(row) for row in super().get(columns)]
        if models and self._eager_load:
            self.eager_load_relations(models)
        return models

    def find(self, id: Any, columns: str | Sequence[str] | None = None) -> T | None:
        model = self.get_model()
        return self.where(model.qualify_column(model.primary_key), "=", id).first(columns)

    def find_many(self, ids: Sequence[Any], columns: str | Sequence[str] | None = None) -> list[T]:
        if not ids:
            return []
        model = self.get_model()
        return self.where_in(model.qualify_column(model.primary_key), ids).get(columns)

    def find_or_fail(self, id: Any, columns: str | Sequence[str] | None = None) -> T:
        result = self.find(id, columns)
        if result is None:
            raise NotFoundError(self.get_model().__name__, [id])
        return result

    def first_or_fail(self, columns: str | Sequence[str] | None = None) -> T:
        result = self.first(columns)
        if result is None:
            raise NotFoundError(self.get_model().__name__)
        return result

    def first_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> T:
        """Return the first model matching ``attributes``, creating it if missing."""
        instance = self.clone().where(attributes).first()
        if instance is not None:
            return instance
        return self.get_model().create({**attributes, **(values or {})})

    def update_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> T:
        instance = self.clone().where(attributes).first()
        if instance is not None:
            instance.fill(values or {}).save()
            return instance
        return self.get_model().create({**attributes, **(values or {})})

    # Eager loading

    def eager_load_relations(self, models: list[T]) -> list[T]:
        for name, nested in self._eager_load.items():
            self._eager_load_relation(models, name, nested)
        return models

    def _eager_load_relation(self, models: list[T], name: str, nested: list[str]) -> None:
        model = self.get_model()
        if name not in model._relation_names:
            logger.warning("Skipping unknown relation %r on %s", name, model.__name__)
            return

        relation = models[0].new_relation(name)
        relation.add_eager_constraints(models)
        if nested:
            relation.get_query().with_(*nested)

        relation.match(models, relation.get_eager(), name)

    # Paging

    def paginate(self, per_page: int = 15, page: int = 1) -> Page[T]:
        """
        Fetch one page of results along with the total row count.

        The count runs on a copy of this query without ordering, limit and
        offset. ``from_``/``to`` are 1-based positions of the first and last
        row on the page, or None when the page is empty.

        Raises:
            ValueError: If ``per_page`` is not positive
        """
        if per_page <= 0:
            raise ValueError(f"per_page must be positive, got {per_page}")
        page = max(1, int(page))

        total = self.clone().reorder().limit(None).offset(None).count()
        data = self.for_page(page, per_page).get()

        from_ = (page - 1) * per_page + 1 if data else None
        return Page(
            data=data,
            total=total,
            per_page=per_page,
            current_page=page,
            last_page=max(1, math.ceil(total / per_page)),
            from_=from_,
            to=from_ + len(data) - 1 if from_ is not None else None,
        )

    def chunk(self, size: int, callback: Callable[[list[T]], Any]) -> bool:
        """
        Feed successive pages of ``size`` models to ``callback``.

        Stops after a short page, or as soon as the callback returns ``False``
        (any other return value, including None, continues). Returns False if
        the callback stopped the iteration.
        """
        if size <= 0:
            raise ValueError(f"Chunk size must be positive, got {size}")

        page = 1
        while True:
            results = self.clone().for_page(page, size).get()
            if not results:
                break
            if callback(results) is False:
                return False
            if len(results) < size:
                break
            page += 1
        return True

    def each(self, callback: Callable[[T], Any], size: int = 1000) -> bool:
        def run(models: list[T]) -> bool | None:
            for model in models:
                if callback(model) is False:
                    return False
            return None

        return self.chunk(size, run)

    # Copies

    def new_query(self) -> ModelQueryBuilder[T]:
        return ModelQueryBuilder(self.connection, self._model)

    def clone(self) -> Self:
        clone = super().clone()
        clone._eager_load = self.get_eager_loads()
        return clone
