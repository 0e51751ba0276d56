"""
Runtime configuration for KeyArray.

The configuration lives in a Donfig `Config` named "keyarray". Donfig
collects it from YAML files in its standard locations and from environment
variables prefixed with `KEYARRAY_`; a `.env` file can seed the environment
first through python-dotenv. The rest of the package reads a validated,
immutable `KeyArrayConfig` snapshot through `get_config()`.

Environment variables
---------------------
KEYARRAY_BLAS_LIB : str, optional
    Explicit path of a shared library exposing the CBLAS interface
    (`cblas_sgemm`, `cblas_dgemm`, ...). When unset, common library names
    are searched for through `ctypes.util.find_library`.
KEYARRAY_DISABLE_BLAS : bool-like, optional
    When truthy, no external routine is used. `strategy="auto"` goes to the
    native kernel; `strategy="blas"` warns and does the same.
KEYARRAY_TILE_M, KEYARRAY_TILE_N, KEYARRAY_TILE_K : int, optional
    Block sizes of the native cache-blocked kernel (default 64 each).
KEYARRAY_COPY_SCRATCH : bool-like, optional
    When truthy (default), operands whose strides cannot be described to an
    external routine are copied into contiguous scratch buffers instead of
    falling back to the native kernel.

Example
-------
```python
from keyarray import config, config_context

config.set({"tile_m": 32})          # permanent
with config_context(disable_blas=True):
    ...                             # native kernel only
```

For more information, see the Donfig documentation at
https://github.com/pytroll/donfig.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Iterator, Optional

from donfig import Config as DConfig
from dotenv import load_dotenv

_TRUE = {"1", "true", "yes", "on", "y", "t"}
_FALSE = {"0", "false", "no", "off", "n", "f", ""}

_DEFAULTS = {
    "blas_lib": None,
    "disable_blas": False,
    "tile_m": 64,
    "tile_n": 64,
    "tile_k": 64,
    "copy_scratch": True,
}


class Config(DConfig):  # type: ignore[misc]
    """
    Donfig configuration of KeyArray.

    Environment variables of the form `KEYARRAY_TILE_M=32` become the key
    `tile_m`; values go through `ast.literal_eval`, so `32` arrives as an int
    and `yes` stays a string. `KeyArrayConfig` normalizes both.
    """

    def reset(self) -> None:
        self.clear()
        self.refresh()


def _new_config() -> Config:
    return Config("keyarray", defaults=[_DEFAULTS])


config = _new_config()


def _env_name(key: str) -> str:
    return f"KEYARRAY_{key.upper()}"


def _as_flag(key: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    v = str(raw).strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"{_env_name(key)} must be a boolean-like value, got {raw!r}")


def _as_int(key: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"{_env_name(key)} must be an integer, got {raw!r}")
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{_env_name(key)} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{_env_name(key)} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class KeyArrayConfig:
    """
    Immutable snapshot of KeyArray runtime settings.

    Attributes
    ----------
    blas_lib : Optional[str]
        Explicit CBLAS library path, or None to search the platform path.
    disable_blas : bool
        Never use an external routine; products run on the native kernel.
    tile_m, tile_n, tile_k : int
        Native kernel block sizes along rows of A, columns of B and the
        shared dimension.
    copy_scratch : bool
        Copy awkwardly-strided operands into scratch buffers so the external
        routine can still be used.
    """

    blas_lib: Optional[str] = None
    disable_blas: bool = False
    tile_m: int = 64
    tile_n: int = 64
    tile_k: int = 64
    copy_scratch: bool = True

    def __post_init__(self) -> None:
        for name in ("tile_m", "tile_n", "tile_k"):
            v = getattr(self, name)
            if int(v) <= 0:
                raise ValueError(f"{name} must be positive, got {v}")

    @classmethod
    def from_donfig(cls, source: DConfig) -> "KeyArrayConfig":
        """
        Validate the values held by a Donfig configuration.

        Raises
        ------
        ValueError
            If a flag is not boolean-like or a tile size is not a positive
            integer.
        """
        lib = source.get("blas_lib", None)
        if lib is not None:
            lib = str(lib).strip() or None
        return cls(
            blas_lib=lib,
            disable_blas=_as_flag("disable_blas", source.get("disable_blas", False)),
            tile_m=_as_int("tile_m", source.get("tile_m", 64)),
            tile_n=_as_int("tile_n", source.get("tile_n", 64)),
            tile_k=_as_int("tile_k", source.get("tile_k", 64)),
            copy_scratch=_as_flag("copy_scratch", source.get("copy_scratch", True)),
        )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "KeyArrayConfig":
        """
        Build a config from a fresh read of the environment.

        The active configuration is left untouched.

        Parameters
        ----------
        dotenv_path : Optional[str]
            If given, variables from this `.env` file are loaded first
            (without overriding variables already set).
        """
        if dotenv_path is not None:
            load_dotenv(dotenv_path, override=False)
        return cls.from_donfig(_new_config())


_FIELDS = tuple(f.name for f in fields(KeyArrayConfig))
_cached: Optional[tuple[tuple, KeyArrayConfig]] = None


def get_config() -> KeyArrayConfig:
    """
    Return the active configuration.

    The snapshot is rebuilt only when a value in `config` has changed.
    """
    global _cached
    raw = tuple(config.get(name, None) for name in _FIELDS)
    cached = _cached
    if cached is None or cached[0] != raw:
        cached = (raw, KeyArrayConfig.from_donfig(config))
        _cached = cached
    return cached[1]


def set_config(cfg: Optional[KeyArrayConfig] = None, **overrides) -> KeyArrayConfig:
    """
    Replace the active configuration.

    Parameters
    ----------
    cfg : Optional[KeyArrayConfig]
        New base configuration. Defaults to the currently active one.
    **overrides
        Field overrides applied on top of `cfg`.

    Returns
    -------
    KeyArrayConfig
        The configuration now in effect.

    Raises
    ------
    TypeError
        If an override names an unknown field.
    """
    base = cfg if cfg is not None else get_config()
    new = replace(base, **overrides) if overrides else base
    config.set(asdict(new))
    return get_config()


def reset_config() -> None:
    """Drop every programmatic setting and re-read files and the environment."""
    global _cached
    config.reset()
    _cached = None


@contextmanager
def config_context(**overrides) -> Iterator[KeyArrayConfig]:
    """
    Temporarily override configuration fields.

    Examples
    --------
    >>> with config_context(disable_blas=True):
    ...     c = a @ b   # native kernel
    """
    new = replace(get_config(), **overrides)
    with config.set({name: getattr(new, name) for name in overrides}):
        yield get_config()
