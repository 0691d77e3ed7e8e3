"""
linkstate_core.utils
--------------------
Small helpers for base64 handling, timestamps and random bytes shared by the codec,
the storage providers and the default credential generator.
"""

from __future__ import annotations
import base64, os, time


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    # reject characters outside the base64 alphabet
    return base64.b64decode(s.encode("ascii"), validate=True)

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def random_bytes(n: int) -> bytes:
    return os.urandom(n)
