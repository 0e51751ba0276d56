"""
CBLAS shared library loader.

This module resolves and loads a system CBLAS implementation via `ctypes`.
It does not expose kernel symbols and does not decide when BLAS is used;
`_cblas_ctypes` binds the symbols and `_dispatch` decides.

Resolution policy
-----------------
1. An explicit `lib_path` argument, or `KeyArrayConfig.blas_lib`
   (`KEYARRAY_BLAS_LIB`), is loaded as-is.
2. Otherwise the platform search path is queried through
   `ctypes.util.find_library` for, in order: "cblas", "openblas", "blas",
   "mkl_rt".

A candidate is accepted only if it exports `cblas_dgemm`. Loading is cached,
so a failing search runs (and warns) at most once per process.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Optional

from .._config import get_config

logger = logging.getLogger(__name__)

_SEARCH_NAMES = ("cblas", "openblas", "blas", "mkl_rt")


def _load_candidate(path: str) -> ctypes.CDLL:
    try:
        lib = ctypes.CDLL(path)
    except OSError as e:
        raise OSError(f"ctypes.CDLL failed for blas={path!r}: {e}") from e
    if not hasattr(lib, "cblas_dgemm"):
        raise OSError(f"{path!r} does not export cblas_dgemm")
    return lib


@lru_cache(maxsize=None)
def load_cblas(lib_path: Optional[str] = None) -> ctypes.CDLL:
    """
    Load a CBLAS shared library via ctypes.

    Parameters
    ----------
    lib_path : Optional[str]
        Exact library to load. When None, the configured `blas_lib` is used,
        then the platform search path.

    Returns
    -------
    ctypes.CDLL
        A handle exporting the `cblas_?gemm` family.

    Raises
    ------
    FileNotFoundError
        If an explicit path does not exist.
    OSError
        If no candidate can be loaded.
    """
    explicit = lib_path if lib_path is not None else get_config().blas_lib
    if explicit:
        p = Path(explicit)
        # bare sonames ("libopenblas.so.0") are resolved by the dynamic loader
        if p.parent != Path(".") and not p.exists():
            raise FileNotFoundError(f"BLAS library not found: {p}")
        return _load_candidate(str(p) if p.parent != Path(".") else explicit)

    errors: list[str] = []
    for name in _SEARCH_NAMES:
        found = ctypes.util.find_library(name)
        if found is None:
            errors.append(f"- {name} (not found)")
            continue
        try:
            lib = _load_candidate(found)
        except OSError as e:
            errors.append(f"- {found} ({e})")
            continue
        logger.debug("loaded CBLAS from %s", found)
        return lib

    raise OSError("Failed to load any CBLAS library. Tried:\n" + "\n".join(errors))


@lru_cache(maxsize=None)
def try_load_cblas(lib_path: Optional[str] = None) -> Optional[ctypes.CDLL]:
    """
    Like `load_cblas`, but return None on failure.

    A `RuntimeWarning` is emitted (once per path) when a library was
    explicitly requested and could not be loaded; a failed automatic search
    is only logged at debug level.
    """
    explicit = lib_path if lib_path is not None else get_config().blas_lib
    try:
        return load_cblas(explicit)
    except OSError as e:
        if explicit:
            warnings.warn(
                f"BLAS library {explicit!r} could not be loaded, falling back: {e}",
                RuntimeWarning,
                stacklevel=2,
            )
        else:
            logger.debug("no CBLAS library available: %s", e)
        return None
