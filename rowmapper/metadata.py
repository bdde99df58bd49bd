"""Row type metadata: markers, descriptors and the mapping registry.

Usage:
    @table("users")
    class User(BaseModel):
        id: Annotated[int | None, PrimaryKey("user_id")] = None
        name: Annotated[str, Column("name")] = ""
        email: Annotated[str, Column()] = ""
        nickname: str = ""  # not mapped

    mapping = get_mapping(User)
"""

import types
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Generic, TypeVar, Union, get_args, get_origin, get_type_hints

from rowmapper.exceptions import ConfigurationError

T = TypeVar("T")

TABLE_NAME_ATTRIBUTE = "__table_name__"


class ColumnType(str, Enum):
    """Semantic type of a mapped column"""

    INTEGER = "INTEGER"
    TEXT = "TEXT"
    DATE = "DATE"


class Column:
    """Marks a field as a stored column.

    Args:
        name: The database column name, defaults to the field name
        type: Explicit semantic type, inferred from the annotation when omitted
    """

    def __init__(self, name: str | None = None, type: ColumnType | None = None):
        self.name = name
        self.type = type

    def __repr__(self) -> str:
        return f"Column({self.name!r}, type={self.type!r})"


class PrimaryKey:
    """Marks the field holding row identity. The field must be an integer."""

    def __init__(self, name: str | None = None):
        self.name = name

    def __repr__(self) -> str:
        return f"PrimaryKey({self.name!r})"


def _attribute_getter(field_name: str) -> Callable[[Any], Any]:
    def getter(entity: Any) -> Any:
        return getattr(entity, field_name)

    return getter


def _attribute_setter(field_name: str) -> Callable[[Any, Any], None]:
    def setter(entity: Any, value: Any) -> None:
        setattr(entity, field_name, value)

    return setter


@dataclass(frozen=True)
class ColumnDescriptor:
    """Links a field to its stored column, semantic type and accessors."""

    field_name: str
    column_name: str
    column_type: ColumnType
    getter: Callable[[Any], Any] | None = field(default=None, compare=False, repr=False)
    setter: Callable[[Any, Any], None] | None = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self):
        if self.getter is None:
            object.__setattr__(self, "getter", _attribute_getter(self.field_name))
        if self.setter is None:
            object.__setattr__(self, "setter", _attribute_setter(self.field_name))

    def get(self, entity: Any) -> Any:
        """Read the field value from an entity"""
        return self.getter(entity)

    def set(self, entity: Any, value: Any) -> None:
        """Assign the field value on an entity"""
        self.setter(entity, value)


@dataclass(frozen=True)
class PrimaryKeyDescriptor(ColumnDescriptor):
    """The column descriptor identifying row identity"""

    column_type: ColumnType = ColumnType.INTEGER


@dataclass(frozen=True)
class EntityMapping(Generic[T]):
    """Explicit mapping descriptor for one row type.

    Built once per type, either from the declared markers (resolve_mapping)
    or by hand for types that use their own accessors and factory.
    """

    entity_class: type[T]
    table_name: str
    primary_key: PrimaryKeyDescriptor
    columns: tuple[ColumnDescriptor, ...]
    factory: Callable[[], T] | None = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.primary_key.column_type is not ColumnType.INTEGER:
            raise ConfigurationError(
                f"Primary key '{self.primary_key.field_name}' of "
                f"{self.entity_class.__name__} must be an integer column"
            )
        column_names = [self.primary_key.column_name] + [
            column.column_name for column in self.columns
        ]
        duplicates = {name for name in column_names if column_names.count(name) > 1}
        if duplicates:
            raise ConfigurationError(
                f"{self.entity_class.__name__} maps column(s) "
                f"{', '.join(sorted(duplicates))} more than once"
            )
        if self.factory is None:
            object.__setattr__(self, "factory", default_factory(self.entity_class))

    @property
    def column_names(self) -> list[str]:
        """Stored column names of the non-key columns, in declaration order"""
        return [column.column_name for column in self.columns]

    def descriptor_for(self, field_name: str) -> ColumnDescriptor:
        """Return the descriptor (primary key included) for a field name"""
        if field_name == self.primary_key.field_name:
            return self.primary_key
        for column in self.columns:
            if column.field_name == field_name:
                return column
        raise ConfigurationError(
            f"{self.entity_class.__name__} has no mapped field '{field_name}'"
        )

    def create(self) -> T:
        """Create an empty instance through the factory"""
        return self.factory()


def default_factory(entity_class: type[T]) -> Callable[[], T]:
    """Pick the construction protocol for a row type.

    Pydantic models are built with model_construct() so that required fields
    do not have to be supplied before hydration assigns them.
    """
    model_construct = getattr(entity_class, "model_construct", None)
    if callable(model_construct):
        return model_construct
    return entity_class


def table(name: str, *, factory: Callable[[], Any] | None = None):
    """Class decorator recording the table name and registering the mapping.

    The mapping is resolved immediately, so misconfigured row types fail at
    import time rather than on first query.
    """
    if not name:
        raise ConfigurationError("Table name must not be empty")

    def decorator(cls: type) -> type:
        setattr(cls, TABLE_NAME_ATTRIBUTE, name)
        register_mapping(resolve_mapping(cls, factory=factory))
        return cls

    return decorator


def _unwrap_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _infer_column_type(entity_class: type, field_name: str, annotation: Any) -> ColumnType:
    python_type = _unwrap_optional(annotation)
    # bool is an int and datetime is a date; neither is supported
    if isinstance(python_type, type) and not issubclass(python_type, bool | datetime):
        if issubclass(python_type, int):
            return ColumnType.INTEGER
        if issubclass(python_type, str):
            return ColumnType.TEXT
        if issubclass(python_type, date):
            return ColumnType.DATE
    type_name = getattr(python_type, "__name__", repr(python_type))
    raise ConfigurationError(
        f"Field '{field_name}' of {entity_class.__name__} has unsupported type "
        f"'{type_name}'; supported types are int, str and date"
    )


def _declared_fields(entity_class: type) -> list[tuple[str, Any, list[Any]]]:
    """Return (field name, annotation, metadata) for every declared field.

    Pydantic models are read through model_fields, everything else through
    the Annotated type hints.
    """
    model_fields = getattr(entity_class, "model_fields", None)
    if isinstance(model_fields, dict):
        return [
            (name, info.annotation, list(info.metadata))
            for name, info in model_fields.items()
        ]

    declared = []
    for name, hint in get_type_hints(entity_class, include_extras=True).items():
        if get_origin(hint) is Annotated:
            base, *extras = get_args(hint)
            declared.append((name, base, extras))
        else:
            declared.append((name, hint, []))
    return declared


def table_name(entity_class: type) -> str:
    """Read the table name declared with @table"""
    name = getattr(entity_class, TABLE_NAME_ATTRIBUTE, None)
    if not name:
        raise ConfigurationError(
            f"Class {entity_class.__name__} has no table name; decorate it with @table"
        )
    return name


def primary_key(entity_class: type) -> PrimaryKeyDescriptor:
    """Find the single field carrying the PrimaryKey marker"""
    found: list[PrimaryKeyDescriptor] = []
    for name, annotation, metadata in _declared_fields(entity_class):
        markers = [marker for marker in metadata if isinstance(marker, PrimaryKey)]
        if not markers:
            continue
        if any(isinstance(marker, Column) for marker in metadata):
            raise ConfigurationError(
                f"Field '{name}' of {entity_class.__name__} is marked both as "
                "primary key and as column"
            )
        column_type = _infer_column_type(entity_class, name, annotation)
        if column_type is not ColumnType.INTEGER:
            raise ConfigurationError(
                f"Primary key '{name}' of {entity_class.__name__} must be an integer"
            )
        found.append(
            PrimaryKeyDescriptor(
                field_name=name, column_name=markers[0].name or name
            )
        )

    if not found:
        raise ConfigurationError(
            f"Class {entity_class.__name__} has no primary key annotation present"
        )
    if len(found) > 1:
        names = ", ".join(descriptor.field_name for descriptor in found)
        raise ConfigurationError(
            f"Class {entity_class.__name__} declares more than one primary key: {names}"
        )
    return found[0]


def columns(entity_class: type) -> tuple[ColumnDescriptor, ...]:
    """Return the fields carrying the Column marker, in declaration order"""
    descriptors = []
    for name, annotation, metadata in _declared_fields(entity_class):
        marker = next(
            (marker for marker in metadata if isinstance(marker, Column)), None
        )
        if marker is None:
            continue
        column_type = marker.type or _infer_column_type(entity_class, name, annotation)
        descriptors.append(
            ColumnDescriptor(
                field_name=name,
                column_name=marker.name or name,
                column_type=column_type,
            )
        )
    return tuple(descriptors)


def resolve_mapping(
    entity_class: type[T], factory: Callable[[], T] | None = None
) -> EntityMapping[T]:
    """Build the mapping descriptor of a row type from its declared markers"""
    model_config = getattr(entity_class, "model_config", None)
    if isinstance(model_config, dict) and model_config.get("frozen"):
        raise ConfigurationError(
            f"Class {entity_class.__name__} is a frozen model; "
            "hydration needs assignable fields"
        )
    return EntityMapping(
        entity_class=entity_class,
        table_name=table_name(entity_class),
        primary_key=primary_key(entity_class),
        columns=columns(entity_class),
        factory=factory,
    )


# Registry of mappings, keyed by row type
_mappings: dict[type, EntityMapping[Any]] = {}


def register_mapping(mapping: EntityMapping[Any]) -> EntityMapping[Any]:
    """Register a mapping, replacing any previous one for the same type"""
    _mappings[mapping.entity_class] = mapping
    return mapping


def get_mapping(entity_class: type[T]) -> EntityMapping[T]:
    """Return the registered mapping, resolving and registering it on first use"""
    mapping = _mappings.get(entity_class)
    if mapping is None:
        mapping = register_mapping(resolve_mapping(entity_class))
    return mapping  # type: ignore[return-value]
