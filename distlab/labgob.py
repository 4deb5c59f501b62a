"""Value encoding for RPC payloads and persisted state.

Values travel as self-describing frames. Dataclass fields whose names start
with an underscore are private and are never transmitted, so the encoder
reports them. Decoding into an object that already holds non-default values
is reported too, because zero values in a frame never overwrite a target's
fields.
"""

from __future__ import annotations

import base64
import dataclasses
import json
import threading
import typing
from typing import Any, BinaryIO

_lock = threading.Lock()
_error_count = 0
_checked: set[Any] = set()
_by_name: dict[str, type] = {}
_by_class: dict[type, str] = {}
_explicit: set[type] = set()

_SCALARS = (bool, int, float, str)


def error_count() -> int:
    """Return how many encoding problems have been reported so far."""
    with _lock:
        return _error_count


def _record_error() -> None:
    global _error_count
    with _lock:
        _error_count += 1


def _is_struct(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _is_private(name: str) -> bool:
    return name.startswith("_")


def _default_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _field_type(field: dataclasses.Field) -> Any:
    """Return a field's declared type, or None when it is only a string."""
    tp = field.type
    if isinstance(tp, str):
        return None
    return tp


def _check_type(tp: Any) -> None:
    try:
        with _lock:
            # only complain once, and avoid recursion.
            if tp in _checked:
                return
            _checked.add(tp)
    except TypeError:
        return

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        for field in dataclasses.fields(tp):
            if _is_private(field.name):
                print(
                    f"labgob error: private field {field.name} of {tp.__name__} "
                    "in RPC or persist/snapshot will break your Raft"
                )
                _record_error()
            hint = _field_type(field)
            if hint is not None:
                _check_type(hint)
        return
    for arg in typing.get_args(tp):
        _check_type(arg)


def _check_value(value: Any) -> None:
    if _is_struct(value):
        _check_type(type(value))
        for field in dataclasses.fields(value):
            if not _is_private(field.name):
                _check_value(getattr(value, field.name))
    elif isinstance(value, dict):
        for key, item in value.items():
            _check_value(key)
            _check_value(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_value(item)


def _check_default(value: Any, depth: int, name: str) -> None:
    if depth > 3:
        return
    if _is_struct(value):
        for field in dataclasses.fields(value):
            path = f"{name}.{field.name}" if name else field.name
            _check_default(getattr(value, field.name), depth + 1, path)
        return
    if isinstance(value, _SCALARS) and value:
        global _error_count
        with _lock:
            if _error_count < 1:
                what = name or type(value).__name__
                print(
                    f"labgob warning: Decoding into a non-default variable/field "
                    f"{what} may not work"
                )
            _error_count += 1


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, _SCALARS):
        return not value
    if isinstance(value, (bytes, bytearray, list, tuple, dict)):
        return len(value) == 0
    if _is_struct(value):
        return all(
            _is_zero(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if not _is_private(f.name)
        )
    return False


def _bind(name: str, cls: type) -> None:
    with _lock:
        existing = _by_name.get(name)
        if existing is not None and existing is not cls and existing in _explicit:
            raise ValueError(f"labgob: registering duplicate types for {name!r}")
        old = _by_class.get(cls)
        if old is not None and old != name and cls in _explicit:
            raise ValueError(
                f"labgob: registering duplicate names for {cls.__qualname__}"
            )
        if old is not None and _by_name.get(old) is cls:
            del _by_name[old]
        _by_name[name] = cls
        _by_class[cls] = name
        _explicit.add(cls)


def _struct_class(value: Any) -> type:
    cls = value if isinstance(value, type) else type(value)
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"labgob: cannot register non-dataclass type {cls.__name__}")
    return cls


def register(cls: Any) -> None:
    """Register a dataclass under its default name so it can be decoded."""
    cls = _struct_class(cls)
    _check_type(cls)
    _bind(_default_name(cls), cls)


def register_name(name: str, cls: Any) -> None:
    """Register a dataclass under an explicit name."""
    cls = _struct_class(cls)
    _check_type(cls)
    _bind(name, cls)


def _name_for(cls: type) -> str:
    with _lock:
        name = _by_class.get(cls)
        if name is None:
            name = _default_name(cls)
            _by_class[cls] = name
            _by_name[name] = cls
        return name


def _to_wire(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, str):
        return str.__str__(value)
    if isinstance(value, (bytes, bytearray)):
        return {"$bytes": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, list):
        return [_to_wire(item) for item in value]
    if isinstance(value, tuple):
        return {"$tuple": [_to_wire(item) for item in value]}
    if isinstance(value, dict):
        return {"$map": [[_to_wire(k), _to_wire(v)] for k, v in value.items()]}
    if _is_struct(value):
        return {
            "$struct": _name_for(type(value)),
            "fields": {
                f.name: _to_wire(getattr(value, f.name))
                for f in dataclasses.fields(value)
                if not _is_private(f.name)
            },
        }
    raise TypeError(f"labgob: cannot encode value of type {type(value).__name__}")


def _field_default(field: dataclasses.Field) -> Any:
    if field.default is not dataclasses.MISSING:
        return field.default
    if field.default_factory is not dataclasses.MISSING:
        return field.default_factory()
    return None


def _build(name: str, fields: dict[str, Any]) -> Any:
    with _lock:
        cls = _by_name.get(name)
    if cls is None:
        raise ValueError(f"labgob: type not registered for name {name!r}")
    instance = cls.__new__(cls)
    for field in dataclasses.fields(cls):
        if not _is_private(field.name) and field.name in fields:
            item = _from_wire(fields[field.name])
        else:
            item = _field_default(field)
        object.__setattr__(instance, field.name, item)
    return instance


def _from_wire(obj: Any) -> Any:
    if isinstance(obj, list):
        return [_from_wire(item) for item in obj]
    if isinstance(obj, dict):
        if "$bytes" in obj:
            return base64.b64decode(obj["$bytes"])
        if "$tuple" in obj:
            return tuple(_from_wire(item) for item in obj["$tuple"])
        if "$map" in obj:
            return {_from_wire(k): _from_wire(v) for k, v in obj["$map"]}
        if "$struct" in obj:
            return _build(obj["$struct"], obj.get("fields", {}))
        raise ValueError("labgob: malformed frame")
    return obj


class Encoder:
    """Writes values to a binary stream, one frame per value."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def encode(self, value: Any) -> None:
        _check_value(value)
        frame = json.dumps(_to_wire(value), separators=(",", ":")) + "\n"
        self._stream.write(frame.encode("utf-8"))


class Decoder:
    """Reads values written by an Encoder from a binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def _next(self) -> Any:
        line = self._stream.readline()
        if not line:
            raise EOFError("labgob: no more values")
        try:
            wire = json.loads(line)
        except ValueError as exc:
            raise ValueError("labgob: malformed frame") from exc
        return _from_wire(wire)

    def decode(self) -> Any:
        """Return the next value from the stream."""
        return self._next()

    def decode_into(self, target: Any) -> Any:
        """Fill the public fields of a dataclass instance from the next value."""
        if not _is_struct(target):
            raise TypeError("labgob: decode_into needs a dataclass instance")
        _check_type(type(target))
        _check_default(target, 2, "")
        value = self._next()
        if not _is_struct(value):
            raise TypeError(
                f"labgob: cannot decode {type(value).__name__} "
                f"into {type(target).__name__}"
            )
        incoming = {f.name for f in dataclasses.fields(value)}
        for field in dataclasses.fields(target):
            if _is_private(field.name) or field.name not in incoming:
                continue
            item = getattr(value, field.name)
            # zero values are not transmitted, so they never overwrite
            if _is_zero(item):
                continue
            setattr(target, field.name, item)
        return target