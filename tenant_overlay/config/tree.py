# tenant_overlay/config/tree.py
"""Helpers for walking typed configuration trees, and their read-only containers."""
import typing
from collections.abc import Mapping as MappingABC
from types import MappingProxyType
from typing import Annotated, Any, Iterator, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import AfterValidator, BaseModel, PlainSerializer, WrapSerializer
from pydantic.fields import FieldInfo

Path = Tuple[str, ...]

K = TypeVar("K")
V = TypeVar("V")


def freeze(value: Any) -> Any:
    """Deep read-only copy: mappings become mappingproxies, lists become tuples."""
    if isinstance(value, MappingABC):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any):
    """Plain, mutable copy of a frozen document."""
    if isinstance(value, MappingABC):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def _freeze_map(value: Mapping) -> Mapping:
    return MappingProxyType(dict(value))


def _serialize_map(value: Mapping, handler):
    return handler(dict(value))


# A validated map that cannot be changed after construction.
FrozenMap = Annotated[Mapping[K, V], AfterValidator(_freeze_map), WrapSerializer(_serialize_map)]

# An arbitrary JSON-like document, frozen all the way down.
FrozenDocument = Annotated[Mapping[str, Any], AfterValidator(freeze), PlainSerializer(thaw)]


def field_key(name: str, field: FieldInfo) -> str:
    """The document key of a model field (its alias when one is generated)."""
    return field.alias or name


def model_type(annotation: Any) -> Optional[Type[BaseModel]]:
    """Return the model class behind ``annotation`` (unwrapping Optional), if any."""
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    if typing.get_origin(annotation) is typing.Union:
        candidates = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(candidates) == 1:
            return model_type(candidates[0])
    return None


def mapping_value_type(annotation: Any) -> Optional[Any]:
    """Return the value type of a ``Dict[str, X]`` or ``Mapping[str, X]`` annotation (unwrapping Optional)."""
    origin = typing.get_origin(annotation)
    if origin in (dict, MappingABC):
        return typing.get_args(annotation)[1]
    if origin is typing.Union:
        candidates = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(candidates) == 1:
            return mapping_value_type(candidates[0])
    return None


def is_open_map(field: FieldInfo) -> bool:
    extra = field.json_schema_extra
    return isinstance(extra, dict) and bool(extra.get("open_map"))


def iter_leaves(node: Any, path: Path = ()) -> Iterator[Tuple[Path, Any]]:
    """
    Yield ``(path, value)`` for every leaf under ``node``.

    Model fields are visited in declaration order, mappings in sorted key
    order and lists of models by index, so the walk is deterministic for a
    given tree. Lists of scalars count as a single leaf; unset optional
    nodes (None) are skipped.
    """
    if node is None:
        return
    if isinstance(node, BaseModel):
        for name, field in type(node).model_fields.items():
            yield from iter_leaves(getattr(node, name), path + (field_key(name, field),))
    elif isinstance(node, MappingABC):
        for key in sorted(node):
            yield from iter_leaves(node[key], path + (str(key),))
    elif isinstance(node, (list, tuple)) and any(isinstance(item, BaseModel) for item in node):
        for index, item in enumerate(node):
            yield from iter_leaves(item, path + (str(index),))
    else:
        yield path, node


def format_path(path: Tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in path) or "<root>"
