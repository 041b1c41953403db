from .base import Relation
from .belongs_to import BelongsTo
from .belongs_to_many import BelongsToMany
from .has_many import HasMany
from .has_one import HasOne
from .has_one_or_many import HasOneOrMany

__all__ = [
    "BelongsTo",
    "BelongsToMany",
    "HasMany",
    "HasOne",
    "HasOneOrMany",
    "Relation",
]
