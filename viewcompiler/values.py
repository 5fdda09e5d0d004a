"""
Value adapter between host values and script engines.

Values cross the boundary as canonical JSON text. A direct structural wrap
leaves nested containers (a list inside a dict) as opaque host objects on the
script side, so every value makes a full round trip through JSON instead.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from viewcompiler.errors import ScriptValueError

_SCALARS = (str, int, float, bool, type(None))
_NOT_SEQUENCES = (str, bytes, bytearray)


def normalize(value: Any) -> Any:
    """
    Translate a host value into plain JSON-space Python objects

    Mappings become dicts, non-string sequences become lists, scalars pass
    through. Any other type is rejected.

    Args:
        value: Host value to translate

    Returns:
        A structure built only from dict, list and scalar values

    Raises:
        ScriptValueError: On circular containers or unsupported types
    """
    return _normalize(value, set())


def _normalize(value, active: set):
    if isinstance(value, _SCALARS):
        return value

    if isinstance(value, Mapping):
        marker = id(value)
        if marker in active:
            raise ScriptValueError("Circular reference detected")
        active.add(marker)
        try:
            return {key: _normalize(item, active) for key, item in value.items()}
        finally:
            active.discard(marker)

    if isinstance(value, Sequence) and not isinstance(value, _NOT_SEQUENCES):
        marker = id(value)
        if marker in active:
            raise ScriptValueError("Circular reference detected")
        active.add(marker)
        try:
            return [_normalize(item, active) for item in value]
        finally:
            active.discard(marker)

    raise ScriptValueError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_script(value: Any) -> str:
    """
    Serialize a host value to the canonical JSON text handed to engines

    Raises:
        ScriptValueError: If the value has no JSON representation
    """
    plain = normalize(value)
    try:
        return json.dumps(plain, allow_nan=False, separators=(',', ':'))
    except (TypeError, ValueError) as e:
        # NaN/Infinity and non-string mapping keys the codec refuses
        raise ScriptValueError(str(e)) from e


def from_script(text: str) -> Any:
    """
    Parse JSON text produced by an engine back into host values

    Raises:
        ScriptValueError: If the engine returned something that is not JSON text
    """
    if not isinstance(text, str):
        raise ScriptValueError(f"Expected JSON text from engine, got {type(text).__name__}")
    try:
        return json.loads(text)
    except ValueError as e:
        raise ScriptValueError(f"Invalid JSON from engine: {e}") from e
