from .casts import Cast
from .metaclass import ModelMetaclass, relationship
from .model import Model
from .query import ModelQueryBuilder, Page
from .relations import BelongsTo, BelongsToMany, HasMany, HasOne, Relation
from .repository import Repository

__all__ = [
    "BelongsTo",
    "BelongsToMany",
    "Cast",
    "HasMany",
    "HasOne",
    "Model",
    "ModelMetaclass",
    "ModelQueryBuilder",
    "Page",
    "Relation",
    "Repository",
    "relationship",
]
