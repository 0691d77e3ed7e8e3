"""
linkstate_core.codec
--------------------
Reversible JSON codec for persisted auth state.

Binary payloads are not JSON-native, so every ``bytes``/``bytearray``/``memoryview``
is written as a tagged object, at any nesting depth:

    {"type": "Buffer", "data": "<base64>"}

and turned back into ``bytes`` on decode. ``data`` may also be a list of byte
values, the shape Node's ``Buffer.toJSON`` produces, so blobs written by other
clients of the same store still load.
"""

from __future__ import annotations
import binascii, json
from dataclasses import asdict, is_dataclass
from typing import Any, Dict

from .errors import DecodeError
from .utils import b64d, b64e

BUFFER_TAG = "Buffer"


def _replacer(obj: Any) -> Any:
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return {"type": BUFFER_TAG, "data": b64e(bytes(obj))}
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not serializable")


def _reviver(d: Dict[str, Any]) -> Any:
    if d.get("type") == BUFFER_TAG and "data" in d:
        data = d["data"]
        if isinstance(data, str):
            return b64d(data)
        if isinstance(data, list):
            return bytes(data)
    return d


def encode(value: Any, indent: int | None = 2) -> str:
    return json.dumps(value, default=_replacer, indent=indent, ensure_ascii=False)


def decode(text: str | bytes) -> Any:
    try:
        return json.loads(text, object_hook=_reviver)
    except (ValueError, TypeError, binascii.Error) as e:
        # JSONDecodeError and bad byte lists are both ValueError
        raise DecodeError(f"unreadable state blob: {e}") from e
