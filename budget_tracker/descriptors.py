from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from aws_cdk import aws_dynamodb as dynamodb


class KeyType(Enum):
    STRING = "S"
    NUMBER = "N"

    def to_attribute_type(self) -> dynamodb.AttributeType:
        if self is KeyType.NUMBER:
            return dynamodb.AttributeType.NUMBER
        return dynamodb.AttributeType.STRING


@dataclass(frozen=True)
class ResourceDescriptor:
    kind: str
    name: str
    attributes: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, kind: str, name: str, **attributes) -> "ResourceDescriptor":
        return cls(kind, name, tuple(sorted((k, str(v)) for k, v in attributes.items())))

    def get(self, key: str, default=None):
        return dict(self.attributes).get(key, default)


@dataclass(frozen=True)
class GlobalIndexSpec:
    index_name: str
    partition_key_name: str
    partition_key_type: KeyType = KeyType.STRING
    sort_key_name: Optional[str] = None
    sort_key_type: Optional[KeyType] = None

    def __post_init__(self):
        if not self.index_name:
            raise ValueError("index_name must not be empty")
        if not self.partition_key_name:
            raise ValueError(f"index {self.index_name!r} needs a partition key name")
        # Sort key type falls back to STRING, same as the partition key.
        if self.sort_key_name and self.sort_key_type is None:
            object.__setattr__(self, "sort_key_type", KeyType.STRING)


@dataclass(frozen=True)
class LogicalTable:
    id: str  # also the physical table name
    partition_key_name: str
    sort_key_name: Optional[str] = None
    secondary_indexes: Tuple[GlobalIndexSpec, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.id:
            raise ValueError("table id must not be empty")
        if not self.partition_key_name:
            raise ValueError(f"table {self.id!r} needs a partition key name")
        object.__setattr__(self, "secondary_indexes", tuple(self.secondary_indexes))
        names = [index.index_name for index in self.secondary_indexes]
        if len(names) != len(set(names)):
            raise ValueError(f"table {self.id!r} declares duplicate index names: {names}")

    def index(self, index_name: str) -> GlobalIndexSpec:
        for spec in self.secondary_indexes:
            if spec.index_name == index_name:
                return spec
        raise KeyError(f"table {self.id!r} has no index {index_name!r}")
