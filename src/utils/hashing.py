"""SHA-256 fingerprints for rendered buffers and configs.

Provides:
    - sha256_array(): Hash array values (dtype and shape included)
    - sha256_string(): Hash a string
    - hash_dict(): Hash a JSON-serializable dict with sorted keys

Used for:
    - Render log lines: config fingerprint pushed as logging context
    - Determinism checks: identical configs and seeds → identical buffer hashes

Results are hex strings (64 chars).

Usage:
    from src.utils import hashing
    digest = hashing.sha256_array(canvas.pixels)

Note: Module named `hashing.py` to avoid shadowing builtin `hash()`.
"""

import hashlib
import json

import numpy as np


def sha256_array(a: np.ndarray) -> str:
    """Compute SHA-256 hash of array values.

    Parameters
    ----------
    a : np.ndarray
        Array to hash

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Notes
    -----
    dtype and shape are mixed into the digest so that a (4, 4) float32
    buffer and a (16,) float32 buffer with the same bytes differ.
    Non-contiguous arrays are copied to C order first.

    Examples
    --------
    >>> sha256_array(np.zeros((2, 2), dtype=np.float32)) == sha256_array(np.zeros((2, 2), dtype=np.float32))
    True
    """
    a = np.ascontiguousarray(a)
    sha256 = hashlib.sha256()
    sha256.update(f"{a.dtype.str}{a.shape}".encode('utf-8'))
    sha256.update(a.tobytes())
    return sha256.hexdigest()


def sha256_string(s: str) -> str:
    """Compute SHA-256 hash of string."""
    sha256 = hashlib.sha256()
    sha256.update(s.encode('utf-8'))
    return sha256.hexdigest()


def hash_dict(d: dict) -> str:
    """Compute SHA-256 hash of dictionary (sorted keys).

    Parameters
    ----------
    d : dict
        Dictionary to hash (must be JSON-serializable)

    Returns
    -------
    str
        SHA-256 hex digest

    Notes
    -----
    Sorts keys for determinism. Used for config fingerprints.

    Examples
    --------
    >>> hash_dict({"a": 1, "b": 2}) == hash_dict({"b": 2, "a": 1})
    True
    """
    json_str = json.dumps(d, sort_keys=True)
    return sha256_string(json_str)
