from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, Self, TypeVar

from ..exceptions import ConfigurationError, NotFoundError
from .casts import DATETIME_FORMAT, Cast, cast_value, serialize_value
from .metaclass import ModelMetaclass, snake_case
from .query import ModelQueryBuilder
from .relations import BelongsTo, BelongsToMany, HasMany, HasOne, Relation

if TYPE_CHECKING:
    from ..database.connection import Connection

M = TypeVar("M", bound="Model")


class Model(metaclass=ModelMetaclass):
    """
    Active-record style base class.

    Attributes live in a plain dict and are reached explicitly through
    :meth:`get_attribute` / :meth:`set_attribute` or the ``model[key]``
    indexer. Relations are methods decorated with ``@relationship``;
    reading their name through ``get_attribute`` lazily loads and caches
    the related value.

    Example:
        >>> class User(Model):
        ...     fillable = ["name", "email"]
        ...
        ...     @relationship
        ...     def posts(self):
        ...         return self.has_many("Post")
        >>> user = User.create(name="Alice", email="alice@example.com")
        >>> user["name"]
        'Alice'
        >>> user.get_attribute("posts")
        []
    """

    primary_key: ClassVar[str] = "id"
    key_type: ClassVar[str] = "int"
    incrementing: ClassVar[bool] = True
    timestamps: ClassVar[bool] = True
    casts: ClassVar[dict[str, Cast]] = {}
    fillable: ClassVar[list[str]] = []
    guarded: ClassVar[list[str]] = ["*"]
    hidden: ClassVar[list[str]] = []
    visible: ClassVar[list[str]] = []

    CREATED_AT: ClassVar[str] = "created_at"
    UPDATED_AT: ClassVar[str] = "updated_at"

    _table: ClassVar[str]
    _relation_names: ClassVar[frozenset[str]]
    _connection: ClassVar[Connection | None] = None

    def __init__(self, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        """Initialize a new, unsaved model from mass-assignable attributes."""
        self._attributes: dict[str, Any] = {}
        self._original: dict[str, Any] = {}
        self._relations: dict[str, Any] = {}
        self.exists = False

        self.fill({**(attributes or {}), **kwargs})
        self.sync_original()

    # Connection

    @classmethod
    def set_connection(cls, connection: Connection) -> None:
        """Bind a connection to this model class and its subclasses."""
        cls._connection = connection

    @classmethod
    def get_connection(cls) -> Connection:
        if cls._connection is None:
            raise ConfigurationError(
                f"No connection bound to {cls.__name__}; call {cls.__name__}.set_connection()"
            )
        return cls._connection

    @classmethod
    def query(cls) -> ModelQueryBuilder[Self]:
        return ModelQueryBuilder(cls.get_connection(), cls)

    def new_query(self) -> ModelQueryBuilder[Self]:
        return type(self).query()

    # Table and key

    @classmethod
    def get_table(cls) -> str:
        return cls._table

    @classmethod
    def qualify_column(cls, column: str) -> str:
        return f"{cls._table}.{column}"

    @classmethod
    def get_foreign_key(cls) -> str:
        """Default name of a column referencing this model: ``user_id``."""
        return snake_case(cls.__name__) + "_id"

    def get_key_name(self) -> str:
        return self.primary_key

    def get_key(self) -> Any:
        return self.get_attribute(self.primary_key)

    def get_key_type(self) -> str:
        return self.key_type

    def _get_key_for_save_query(self) -> Any:
        """Key of the stored row, even if the primary key was changed since."""
        if self.primary_key in self._original:
            return self._original[self.primary_key]
        return self.get_key()

    # Mass assignment

    def fill(self, attributes: Mapping[str, Any]) -> Self:
        """Set every attribute that passes the fillable/guarded rules."""
        for key, value in attributes.items():
            if self.is_fillable(key):
                self.set_attribute(key, value)
        return self

    def force_fill(self, attributes: Mapping[str, Any]) -> Self:
        for key, value in attributes.items():
            self.set_attribute(key, value)
        return self

    def is_fillable(self, key: str) -> bool:
        if key in self.fillable:
            return True
        if "*" in self.guarded:
            return False
        return key not in self.guarded

    # Attributes

    def get_attribute(self, key: str) -> Any:
        """
        Read an attribute or relation.

        Stored attributes are returned through their cast. Otherwise a cached
        relation value is returned, or the relation is loaded and cached if
        ``key`` names a relation method. Unknown keys give None.
        """
        if key in self._attributes:
            value = self._attributes[key]
            if key in self.casts:
                return cast_value(self.casts[key], value)
            return value

        if key in self._relations:
            return self._relations[key]

        if key in self._relation_names:
            return self._get_relationship_from_method(key)

        return None

    def set_attribute(self, key: str, value: Any) -> Self:
        if key in self.casts:
            value = serialize_value(self.casts[key], value)
        self._attributes[key] = value
        return self

    def discard_attribute(self, key: str) -> None:
        """Remove an attribute from both the current and original state."""
        self._attributes.pop(key, None)
        self._original.pop(key, None)

    def get_attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    def __getitem__(self, key: str) -> Any:
        return self.get_attribute(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set_attribute(key, value)

    def __delitem__(self, key: str) -> None:
        self._attributes.pop(key, None)
        self._relations.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._attributes or key in self._relations

    # Dirty tracking

    def get_original(self, key: str | None = None) -> Any:
        if key is None:
            return dict(self._original)
        return self._original.get(key)

    def sync_original(self) -> Self:
        self._original = dict(self._attributes)
        return self

    def _differs(self, key: str) -> bool:
        if (key in self._attributes) != (key in self._original):
            return True
        current, original = self._attributes.get(key), self._original.get(key)
        return type(current) is not type(original) or current != original

    def is_dirty(self, key: str | None = None) -> bool:
        if key is not None:
            return self._differs(key)
        return any(self._differs(k) for k in self._attributes.keys() | self._original.keys())

    def get_dirty(self) -> dict[str, Any]:
        return {key: value for key, value in self._attributes.items() if self._differs(key)}

    # Persistence

    def save(self) -> bool:
        """Insert a new row or update the dirty columns of an existing one."""
        if self.exists:
            return self._perform_update()
        return self._perform_insert()

    def _perform_insert(self) -> bool:
        if self.timestamps:
            now = self.fresh_timestamp()
            self.set_attribute(self.CREATED_AT, now)
            self.set_attribute(self.UPDATED_AT, now)

        attributes = dict(self._attributes)
        if self.incrementing:
            attributes.pop(self.primary_key, None)

        id = self.new_query().insert_get_id(attributes)
        if self.incrementing:
            if self.get_key_type() == "int" and id is not None:
                id = int(id)
            self.set_attribute(self.primary_key, id)

        self.exists = True
        self.sync_original()
        return True

    def _perform_update(self) -> bool:
        if not self.is_dirty():
            return True

        if self.timestamps:
            self.set_attribute(self.UPDATED_AT, self.fresh_timestamp())

        self.new_query().where(self.primary_key, "=", self._get_key_for_save_query()).update(
            self.get_dirty()
        )
        self.sync_original()
        return True

    def fresh_timestamp(self) -> str:
        return datetime.now().strftime(DATETIME_FORMAT)

    def delete(self) -> bool:
        """Delete the row; attributes stay readable on the instance."""
        if not self.exists:
            return False

        self.new_query().where(self.primary_key, "=", self._get_key_for_save_query()).delete()
        self.exists = False
        return True

    def touch(self) -> bool:
        if not self.timestamps:
            return False
        self.set_attribute(self.UPDATED_AT, self.fresh_timestamp())
        return self.save()

    def fresh(self) -> Self | None:
        """A newly loaded copy of this row, or None if it is gone."""
        if not self.exists:
            return None
        return self.new_query().find(self.get_key())

    def refresh(self) -> Self:
        """Reload attributes and already loaded relations from the database."""
        if not self.exists:
            return self

        fresh = self.new_query().find(self.get_key())
        if fresh is None:
            raise NotFoundError(type(self).__name__, [self.get_key()])

        self._attributes = fresh.get_attributes()
        self.sync_original()

        loaded = [name for name in self._relations if name in self._relation_names]
        if loaded:
            self.load(*loaded)
        return self

    @classmethod
    def hydrate(cls, attributes: Mapping[str, Any]) -> Self:
        """Build a persisted instance from a database row."""
        model = cls()
        model.exists = True
        model.force_fill(attributes)
        model.sync_original()
        return model

    # Class-level helpers

    @classmethod
    def create(cls, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Self:
        model = cls(attributes, **kwargs)
        model.save()
        return model

    @classmethod
    def find(cls, id: Any) -> Self | None:
        return cls.query().find(id)

    @classmethod
    def find_or_fail(cls, id: Any) -> Self:
        return cls.query().find_or_fail(id)

    @classmethod
    def all(cls, columns: str | list[str] | None = None) -> list[Self]:
        return cls.query().get(columns)

    @classmethod
    def where(cls, *args: Any, **kwargs: Any) -> ModelQueryBuilder[Self]:
        return cls.query().where(*args, **kwargs)

    @classmethod
    def first(cls) -> Self | None:
        return cls.query().first()

    @classmethod
    def with_(cls, *relations: str) -> ModelQueryBuilder[Self]:
        return cls.query().with_(*relations)

    @classmethod
    def destroy(cls, ids: Any) -> int:
        """Delete models by key one by one; returns how many were deleted."""
        if isinstance(ids, Iterable) and not isinstance(ids, (str, bytes)):
            ids = list(ids)
        else:
            ids = [ids]

        count = 0
        for id in ids:
            model = cls.find(id)
            if model is not None and model.delete():
                count += 1
        return count

    # Relations

    def has_one(
        self,
        related: type[M] | str,
        foreign_key: str | None = None,
        local_key: str | None = None,
    ) -> HasOne[M]:
        model = ModelMetaclass.resolve(related)
        foreign_key = foreign_key or self.get_foreign_key()
        return HasOne(
            model.query(),
            self,
            model.qualify_column(foreign_key),
            local_key or self.primary_key,
        )

    def has_many(
        self,
        related: type[M] | str,
        foreign_key: str | None = None,
        local_key: str | None = None,
    ) -> HasMany[M]:
        model = ModelMetaclass.resolve(related)
        foreign_key = foreign_key or self.get_foreign_key()
        return HasMany(
            model.query(),
            self,
            model.qualify_column(foreign_key),
            local_key or self.primary_key,
        )

    def belongs_to(
        self,
        related: type[M] | str,
        foreign_key: str | None = None,
        owner_key: str | None = None,
    ) -> BelongsTo[M]:
        model = ModelMetaclass.resolve(related)
        return BelongsTo(
            model.query(),
            self,
            foreign_key or model.get_foreign_key(),
            owner_key or model.primary_key,
        )

    def belongs_to_many(
        self,
        related: type[M] | str,
        table: str | None = None,
        foreign_pivot_key: str | None = None,
        related_pivot_key: str | None = None,
        parent_key: str | None = None,
        related_key: str | None = None,
    ) -> BelongsToMany[M]:
        model = ModelMetaclass.resolve(related)
        return BelongsToMany(
            model.query(),
            self,
            table or self.joining_table(model),
            foreign_pivot_key or self.get_foreign_key(),
            related_pivot_key or model.get_foreign_key(),
            parent_key or self.primary_key,
            related_key or model.primary_key,
        )

    def joining_table(self, related: type[Model]) -> str:
        """Default pivot table name: both snake-cased names, sorted, joined by ``_``."""
        names = sorted([snake_case(type(self).__name__), snake_case(related.__name__)])
        return "_".join(names)

    def new_relation(self, name: str) -> Relation[Any]:
        if name not in self._relation_names:
            raise ValueError(f"{type(self).__name__} has no relation named {name!r}")
        return getattr(self, name)()

    def _get_relationship_from_method(self, name: str) -> Any:
        results = self.new_relation(name).get_results()
        self._relations[name] = results
        return results

    def get_relation(self, name: str) -> Any:
        return self._relations.get(name)

    def set_relation(self, name: str, value: Any) -> Self:
        self._relations[name] = value
        return self

    def unset_relation(self, name: str) -> Self:
        self._relations.pop(name, None)
        return self

    def relation_loaded(self, name: str) -> bool:
        return name in self._relations

    def get_relations(self) -> dict[str, Any]:
        return dict(self._relations)

    def load(self, *relations: str) -> Self:
        """Eager load relations onto this already retrieved instance."""
        self.new_query().with_(*relations).eager_load_relations([self])
        return self

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Attributes (cast, filtered by hidden/visible) followed by loaded relations."""
        keys = [key for key in self._attributes if key not in self.hidden]
        if self.visible:
            keys = [key for key in keys if key in self.visible]

        result = {key: self.get_attribute(key) for key in keys}
        for name, value in self._relations.items():
            if isinstance(value, Model):
                result[name] = value.to_dict()
            elif isinstance(value, list):
                result[name] = [item.to_dict() if isinstance(item, Model) else item for item in value]
            else:
                result[name] = value
        return result

    def to_json(self, **kwargs: Any) -> str:
        kwargs.setdefault("default", str)
        return json.dumps(self.to_dict(), **kwargs)

    def __repr__(self) -> str:
        field_values = []
        for key, value in self._attributes.items():
            if value is not None:
                field_values.append(f"{key}={value!r}")
        return f"{self.__class__.__name__}({', '.join(field_values)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        if self.get_key() is not None and other.get_key() is not None:
            return self.get_key() == other.get_key()
        return self._attributes == other._attributes
