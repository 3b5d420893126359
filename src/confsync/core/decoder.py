"""
Structured decoding of raw config values into typed destinations.

A raw value is decoded as JSON when it is syntactically valid JSON and as
YAML otherwise. A document that happens to be valid JSON is never retried
as YAML.

Destinations are updated all-or-nothing: the decoded document is first
turned into a complete new value, and only then copied onto the
destination. A failure at any point leaves the destination as it was.

Supported destinations:
- instances of (non-frozen) dataclasses, nested dataclasses included
- mutable mappings such as ``dict``
"""

from __future__ import annotations

import json
import types
from collections.abc import MutableMapping
from dataclasses import MISSING, fields, is_dataclass
from enum import Enum, StrEnum
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

import yaml

from confsync.exceptions import DecodeError, InvalidDestinationError


class Format(StrEnum):
    """Supported textual encodings, in detection order."""

    JSON = "json"
    YAML = "yaml"


def as_text(raw: Any) -> str:
    """Textual form of a raw value as delivered by a source or stored on disk."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"raw value is not valid UTF-8: {e}") from e
    return str(raw)


def detect_format(raw: Any) -> Format:
    """Return JSON if ``raw`` is syntactically valid JSON, YAML otherwise."""
    return _parse(as_text(raw))[0]


def validate_destination(destination: Any) -> None:
    """
    Check that ``destination`` can be updated in place.

    Raises:
        InvalidDestinationError: destination is None, a class, a frozen
            dataclass, or of an unsupported (e.g. immutable) type
    """
    if destination is None:
        raise InvalidDestinationError("[conf] destination is None")
    if isinstance(destination, type):
        raise InvalidDestinationError(
            f"[conf] cannot apply to class {destination.__name__}, pass an instance",
            destination_type=destination.__name__,
        )
    type_name = type(destination).__name__
    if is_dataclass(destination):
        if destination.__dataclass_params__.frozen:
            raise InvalidDestinationError(
                f"[conf] cannot apply to frozen dataclass {type_name}", destination_type=type_name
            )
        return
    if isinstance(destination, MutableMapping):
        return
    raise InvalidDestinationError(
        f"[conf] cannot apply to {type_name}, expected a dataclass instance or mutable mapping",
        destination_type=type_name,
    )


def decode(raw: Any, destination: Any) -> Format:
    """
    Decode ``raw`` into ``destination``.

    Args:
        raw: Raw value (str, bytes, or anything with a meaningful ``str()``)
        destination: Dataclass instance or mutable mapping, updated in place

    Returns:
        The format the value was decoded as

    Raises:
        InvalidDestinationError: destination cannot be updated in place
        DecodeError: raw value is neither JSON nor YAML, or does not fit
            the destination; destination is untouched
    """
    validate_destination(destination)
    fmt, document = _parse(as_text(raw))
    try:
        _assign(document, destination)
    except DecodeError as e:
        raise DecodeError(
            f"{fmt} document does not fit {type(destination).__name__} at {e.path}: {e.message}",
            format=str(fmt),
            path=e.path,
        ) from e
    return fmt


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON; such values are left to the YAML decoder
    raise ValueError(f"{name} is not valid JSON")


def _parse(text: str) -> tuple[Format, Any]:
    try:
        return Format.JSON, json.loads(text, parse_constant=_reject_constant)
    except RecursionError as e:
        raise DecodeError("JSON document is nested too deeply", format=str(Format.JSON)) from e
    except ValueError:
        pass
    try:
        return Format.YAML, yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DecodeError(f"value is neither valid JSON nor valid YAML: {e}", format=str(Format.YAML)) from e
    except RecursionError as e:
        raise DecodeError("YAML document is nested too deeply", format=str(Format.YAML)) from e
    except (ValueError, TypeError, AttributeError) as e:
        # Explicit tags such as !!int or !!timestamp fail in the constructor, outside YAMLError
        raise DecodeError(f"YAML value cannot be constructed: {e}", format=str(Format.YAML)) from e


def _assign(document: Any, destination: Any) -> None:
    if is_dataclass(destination):
        replacement = _build(type(destination), document, "$")
        for f in fields(destination):
            setattr(destination, f.name, getattr(replacement, f.name))
        return

    if not isinstance(document, dict):
        raise DecodeError(f"expected a mapping, got {type(document).__name__}", path="$")
    destination.clear()
    destination.update(document)


def _build(cls: type, document: Any, path: str) -> Any:
    """Construct a fresh ``cls`` instance from a decoded mapping."""
    if not isinstance(document, dict):
        raise DecodeError(f"expected a mapping for {cls.__name__}, got {type(document).__name__}", path=path)

    hints = get_type_hints(cls)
    # Keys match field names case-insensitively
    lowered = {str(k).lower(): v for k, v in document.items()}

    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        if not f.init:
            continue
        name = f.metadata.get("key", f.name)
        field_path = f"{path}.{name}"
        if name in document:
            value = document[name]
        elif name.lower() in lowered:
            value = lowered[name.lower()]
        elif f.default is MISSING and f.default_factory is MISSING:
            raise DecodeError(f"missing required field '{name}'", path=field_path)
        else:
            continue
        kwargs[f.name] = _convert(value, hints.get(f.name, Any), field_path)

    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"{cls.__name__} rejected value: {e}", path=path) from e


def _convert(value: Any, tp: Any, path: str) -> Any:
    if tp is Any:
        return value

    origin = get_origin(tp)
    args = get_args(tp)

    if origin is Union or origin is types.UnionType:
        if value is None and type(None) in args:
            return None
        last_error: DecodeError | None = None
        for arg in args:
            if arg is type(None):
                continue
            try:
                return _convert(value, arg, path)
            except DecodeError as e:
                last_error = e
        raise last_error or DecodeError(f"no matching type for {value!r}", path=path)

    if origin is Literal:
        if value in args:
            return value
        raise DecodeError(f"expected one of {list(args)}, got {value!r}", path=path)

    if isinstance(tp, type) and is_dataclass(tp):
        return _build(tp, value, path)

    if origin is list or tp is list:
        if not isinstance(value, list):
            raise _mismatch("list", value, path)
        item_tp = args[0] if args else Any
        return [_convert(item, item_tp, f"{path}[{i}]") for i, item in enumerate(value)]

    if origin is tuple or tp is tuple:
        if not isinstance(value, list):
            raise _mismatch("list", value, path)
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            item_tp = args[0] if args else Any
            return tuple(_convert(item, item_tp, f"{path}[{i}]") for i, item in enumerate(value))
        if len(args) != len(value):
            raise DecodeError(f"expected {len(args)} items, got {len(value)}", path=path)
        return tuple(_convert(item, arg, f"{path}[{i}]") for i, (item, arg) in enumerate(zip(value, args)))

    if origin is dict or tp is dict:
        if not isinstance(value, dict):
            raise _mismatch("mapping", value, path)
        key_tp, value_tp = args if args else (Any, Any)
        return {_convert(k, key_tp, path): _convert(v, value_tp, f"{path}.{k}") for k, v in value.items()}

    if isinstance(tp, type) and issubclass(tp, Enum):
        try:
            return tp(value)
        except ValueError:
            raise DecodeError(f"{value!r} is not a valid {tp.__name__}", path=path) from None

    if tp is bool:
        if not isinstance(value, bool):
            raise _mismatch("bool", value, path)
        return value

    if tp is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _mismatch("int", value, path)
        return value

    if tp is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _mismatch("float", value, path)
        return float(value)

    if isinstance(tp, type):
        if not isinstance(value, tp):
            raise _mismatch(tp.__name__, value, path)
        return value

    return value


def _mismatch(expected: str, value: Any, path: str) -> DecodeError:
    return DecodeError(f"expected {expected}, got {type(value).__name__}", path=path)
