"""
Native cache-blocked matrix multiplication.

`tiled_matmul` computes `C = alpha * A @ B + beta * C` directly on strided
buffers. It walks row tiles of A, then column tiles of B, then tiles of the
shared dimension, so a working set of `mc x kc` elements of A and `kc x nc`
elements of B is reused while it is hot.

The kernel only needs `*` and `+` on the elements, so it works for every
dtype, including integers and Python objects, at the price of interpreted
loops. The dispatcher prefers an external routine whenever the element type
and layouts allow it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

import numpy as np

from .._config import KeyArrayConfig, get_config


@dataclass(frozen=True)
class TileConfig:
    """
    Block sizes of the native kernel.

    Attributes
    ----------
    mc : int
        Rows of A per tile.
    nc : int
        Columns of B per tile.
    kc : int
        Length of the shared dimension per tile.
    """

    mc: int = 64
    nc: int = 64
    kc: int = 64

    def __post_init__(self) -> None:
        for name in ("mc", "nc", "kc"):
            if getattr(self, name) <= 0:
                raise ValueError(f"tile size {name} must be positive")

    @classmethod
    def from_config(cls, config: Optional[KeyArrayConfig] = None) -> "TileConfig":
        cfg = config if config is not None else get_config()
        return cls(cfg.tile_m, cfg.tile_n, cfg.tile_k)


class StridedMatrix(NamedTuple):
    """Two-dimensional strided window over a flat buffer."""

    data: np.ndarray
    offset: int
    rows: int
    cols: int
    rs: int
    cs: int

    @classmethod
    def of(cls, array: Any, data: np.ndarray) -> "StridedMatrix":
        rows, cols = array.shape
        rs, cs = array.strides
        return cls(data, array.offset, rows, cols, rs, cs)


def _scale(c: StridedMatrix, beta: Any) -> None:
    data = c.data
    zero = 0 if data.dtype.hasobject else data.dtype.type(0)
    for i in range(c.rows):
        row = c.offset + i * c.rs
        for j in range(c.cols):
            o = row + j * c.cs
            data[o] = zero if beta == 0 else beta * data[o]


def tiled_matmul(
    a: StridedMatrix,
    b: StridedMatrix,
    out: StridedMatrix,
    tiles: Optional[TileConfig] = None,
    *,
    alpha: Any = 1,
    beta: Any = 0,
) -> None:
    """
    `out = alpha * a @ b + beta * out`, in place on `out`.

    Parameters
    ----------
    a, b, out : StridedMatrix
        Operands of shapes (m, k), (k, n) and (m, n). Shapes are validated by
        the caller; `out` must not overlap `a` or `b`.
    tiles : TileConfig, optional
        Block sizes. Defaults to the active configuration.
    alpha, beta : scalar
        Scaling factors. With `beta == 0` the previous contents of `out` are
        ignored (NaNs included).
    """
    c = out
    tiles = tiles if tiles is not None else TileConfig.from_config()
    m, k, n = a.rows, a.cols, b.cols
    mc, nc, kc = tiles.mc, tiles.nc, tiles.kc

    if not (beta == 1):
        _scale(c, beta)
    if m == 0 or n == 0 or k == 0:
        return

    ad, bd, cd = a.data, b.data, c.data
    for i0 in range(0, m, mc):
        i1 = min(i0 + mc, m)
        for j0 in range(0, n, nc):
            j1 = min(j0 + nc, n)
            for p0 in range(0, k, kc):
                p1 = min(p0 + kc, k)
                for i in range(i0, i1):
                    arow = a.offset + i * a.rs
                    crow = c.offset + i * c.rs
                    for j in range(j0, j1):
                        bcol = b.offset + j * b.cs
                        acc = ad[arow + p0 * a.cs] * bd[bcol + p0 * b.rs]
                        for p in range(p0 + 1, p1):
                            acc = acc + ad[arow + p * a.cs] * bd[bcol + p * b.rs]
                        o = crow + j * c.cs
                        cd[o] = cd[o] + (acc if alpha == 1 else alpha * acc)
