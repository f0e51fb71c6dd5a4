"""KRM objects backed by round-trip YAML, with formatting-preserving updates."""

from __future__ import annotations

import copy
import dataclasses
import io
from collections.abc import Mapping, MutableMapping, Sequence
from enum import Enum
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq


def _yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 4096
    return yaml


def _to_plain(value: Any, drop_none: bool = True) -> Any:
    """Turn dataclasses, enums, YAML nodes and containers into builtin data."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return bool(value)
    if isinstance(value, str):
        return str(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, Mapping):
        out = {}
        for key, item in value.items():
            plain = _to_plain(item, drop_none)
            if plain is None and drop_none:
                continue
            out[key] = plain
        return out
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _to_plain(to_dict(), drop_none)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _to_plain(
            {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}, drop_none
        )
    if isinstance(value, (list, tuple)):
        return [_to_plain(item, drop_none) for item in value]
    return value


def _to_node(plain: Any) -> Any:
    if isinstance(plain, Mapping):
        node = CommentedMap()
        for key, item in plain.items():
            node[key] = _to_node(item)
        return node
    if isinstance(plain, list):
        return CommentedSeq(_to_node(item) for item in plain)
    return plain


def _scalar_equal(old: Any, new: Any) -> bool:
    if isinstance(old, bool) != isinstance(new, bool):
        return False
    try:
        return bool(old == new)
    except Exception:
        return False


def _matches(old: Any, new: Any) -> bool:
    """Whether formatting of `old` should be carried over to `new`."""
    if isinstance(old, Mapping):
        if not isinstance(new, Mapping):
            return False
        for key, item in old.items():
            if not isinstance(key, str) or key not in new:
                return False
            if not _matches(item, new[key]):
                return False
        return True
    if isinstance(old, Sequence) and not isinstance(old, str):
        return isinstance(new, Sequence) and not isinstance(new, str)
    if isinstance(new, (Mapping, list)):
        return False
    return _scalar_equal(old, new)


def _merge(old: Any, new: Any) -> Any:
    """Return a node holding `new`, reusing the formatting held by `old`."""
    if isinstance(new, Mapping) and isinstance(old, CommentedMap):
        for key in [k for k in old if k not in new]:
            del old[key]
        for key, item in new.items():
            old[key] = _merge(old[key], item) if key in old else _to_node(item)
        return old
    if isinstance(new, list) and isinstance(old, CommentedSeq):
        result = CommentedSeq()
        used: set[int] = set()
        for item in new:
            match = next(
                (i for i, o in enumerate(old) if i not in used and _matches(o, item)), None
            )
            if match is None:
                result.append(_to_node(item))
            else:
                used.add(match)
                result.append(_merge(old[match], item))
        if old.ca.comment:
            result.ca.comment = old.ca.comment
        return result
    if not isinstance(new, (Mapping, list)) and not isinstance(old, (Mapping, list)):
        if _scalar_equal(old, new):
            return old
    return _to_node(new)


class KubeObject:
    """A Kubernetes resource held as a round-trip YAML mapping."""

    def __init__(self, data: MutableMapping | None = None):
        self._data = data if data is not None else CommentedMap()

    @classmethod
    def parse(cls, text: str | bytes) -> KubeObject:
        if isinstance(text, bytes):
            text = text.decode()
        data = _yaml().load(text)
        if data is None:
            raise ValueError("cannot parse an empty YAML document")
        if not isinstance(data, MutableMapping):
            raise ValueError("a KRM object must be a YAML mapping")
        return cls(data)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KubeObject:
        return cls(_to_node(_to_plain(data)))

    def to_yaml(self) -> str:
        stream = io.StringIO()
        _yaml().dump(self._data, stream)
        return stream.getvalue()

    def to_dict(self) -> dict[str, Any]:
        return _to_plain(self._data, drop_none=False)

    def copy(self) -> KubeObject:
        return type(self)(copy.deepcopy(self._data))

    @property
    def api_version(self) -> str:
        return str(self._data.get("apiVersion", "") or "")

    @property
    def kind(self) -> str:
        return str(self._data.get("kind", "") or "")

    @property
    def name(self) -> str:
        return str(self.nested("metadata", "name") or "")

    @property
    def namespace(self) -> str:
        return str(self.nested("metadata", "namespace") or "")

    def get_annotations(self) -> dict[str, str]:
        annotations = self.nested("metadata", "annotations") or {}
        return {str(k): str(v) for k, v in annotations.items()}

    def get_annotation(self, key: str) -> str:
        return self.get_annotations().get(key, "")

    def set_annotation(self, key: str, value: str) -> None:
        metadata = self._data.get("metadata")
        if not isinstance(metadata, MutableMapping):
            metadata = CommentedMap()
            self._data["metadata"] = metadata
        annotations = metadata.get("annotations")
        if not isinstance(annotations, MutableMapping):
            annotations = CommentedMap()
            metadata["annotations"] = annotations
        annotations[key] = str(value)

    def nested(self, *fields: str) -> Any:
        """Return a builtin copy of the value at the path, or None."""
        node: Any = self._data
        for field in fields:
            if not isinstance(node, Mapping) or field not in node:
                return None
            node = node[field]
        return _to_plain(node, drop_none=False)

    def set_nested_field(self, value: Any, *fields: str) -> None:
        """Set the value at the path, creating intermediate mappings."""
        if not fields:
            raise ValueError("at least one field is required")
        parent = _parent_node(self._data, fields, create=True)
        parent[fields[-1]] = _to_node(_to_plain(value))

    def is_gvk(self, api_version: str, kind: str) -> bool:
        return self.api_version == api_version and self.kind == kind

    def same_identity(self, other: KubeObject) -> bool:
        return (
            self.api_version == other.api_version
            and self.kind == other.kind
            and self.name == other.name
            and self.namespace == other.namespace
        )

    def __repr__(self) -> str:
        return f"KubeObject({self.api_version}, {self.kind}, {self.name})"


def _parent_node(data: MutableMapping, fields: Sequence[str], create: bool) -> Any:
    node = data
    for field in fields[:-1]:
        child = node.get(field)
        if not isinstance(child, MutableMapping):
            if not create:
                return None
            child = CommentedMap()
            node[field] = child
        node = child
    return node


def set_nested_field_keep_formatting(obj: KubeObject, value: Any, *fields: str) -> None:
    """Set a field (or the whole object) keeping comments and key order where possible.

    A value of None removes the field.
    """
    plain = _to_plain(value)
    if not fields:
        if not isinstance(plain, Mapping):
            raise ValueError("a whole object must be set from a mapping")
        obj._data = _merge(obj._data, plain)
        return
    parent = _parent_node(obj._data, fields, create=plain is not None)
    leaf = fields[-1]
    if plain is None:
        if parent is not None and leaf in parent:
            del parent[leaf]
        return
    parent[leaf] = _merge(parent[leaf], plain) if leaf in parent else _to_node(plain)


class TypedKubeObject:
    """A KubeObject paired with a dataclass type that describes it."""

    def __init__(self, value_type: type, source: Any):
        if not (isinstance(value_type, type) and dataclasses.is_dataclass(value_type)):
            raise TypeError(f"type {value_type!r} is not a dataclass")
        if source is None:
            raise ValueError("cannot initialize with a nil object")
        self.value_type = value_type
        if isinstance(source, KubeObject):
            self.obj = source
        elif isinstance(source, value_type):
            self.obj = KubeObject.from_dict(_to_plain(source))
        elif isinstance(source, (str, bytes)):
            self.obj = KubeObject.parse(source)
        else:
            raise TypeError(f"cannot build a {value_type.__name__} object from {source!r}")

    def to_value(self) -> Any:
        data = self.obj.to_dict()
        from_dict = getattr(self.value_type, "from_dict", None)
        if callable(from_dict):
            return from_dict(data)
        names = {f.name for f in dataclasses.fields(self.value_type)}
        return self.value_type(**{k: v for k, v in data.items() if k in names})

    def _field(self, value: Any, name: str) -> Any:
        if not dataclasses.is_dataclass(value) or isinstance(value, type):
            raise TypeError(f"{value!r} is not a dataclass instance")
        if name not in {f.name for f in dataclasses.fields(value)}:
            raise AttributeError(f"type {type(value).__name__!r} doesn't have a {name!r} field")
        return getattr(value, name)

    def set_spec(self, value: Any) -> None:
        set_nested_field_keep_formatting(self.obj, self._field(value, "spec"), "spec")

    def set_status(self, value: Any) -> None:
        set_nested_field_keep_formatting(self.obj, self._field(value, "status"), "status")

    def set_from_typed(self, value: Any) -> None:
        set_nested_field_keep_formatting(self.obj, value)