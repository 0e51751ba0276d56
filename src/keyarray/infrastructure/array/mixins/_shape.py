"""
Array shape mixin.

Reshaping, axis permutation and broadcasting. None of these touch element
memory except `reshape` when the layout makes a view impossible.

Naming follows ownership:

- `into_*`, `reversed_axes`, `permuted_axes`, `insert_axis`, `remove_axis`
  consume the receiver and keep its storage;
- `swap_axes`, `invert_axis`, `merge_axes` update the receiver in place;
- `t`, `reshape` (when contiguous) and `broadcast` return read-only views.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Sequence, Type, Union

from ....domain._errors import ShapeMismatchError
from ....domain._layout import Layout
from ....domain.dimension import (
    Dim,
    DimLike,
    as_shape,
    co_broadcast,
    normalize_axis,
    upcast,
)
from ...storage import OwnedStorage


def _check_order(order: str) -> str:
    if order not in ("C", "F"):
        raise ValueError(f"order must be 'C' or 'F', got {order!r}")
    return order


class ArrayMixinShape(ABC):
    """
    Shape and axis operations for `Array`.
    """

    # ------------------------------------------------------------------
    # reshape
    # ------------------------------------------------------------------
    def _reshaped_layout(self, shape: DimLike, order: str):
        """
        Strides for `shape` over the current elements, or None if the layout
        does not allow a zero-copy reinterpretation in `order`.
        """
        new_dim = as_shape(shape)
        if new_dim.size() != self.size:
            raise ShapeMismatchError(
                f"cannot reshape array of size {self.size} into shape {tuple(new_dim)}",
                self.shape,
                tuple(new_dim),
            )
        lay = self.layout
        flag = Layout.CORDER if order == "C" else Layout.FORDER
        if not lay.is_(flag):
            return new_dim, None
        strides = new_dim.default_strides() if order == "C" else new_dim.fortran_strides()
        return new_dim, strides

    def reshape(self, shape: DimLike, order: str = "C") -> Any:
        """
        Array with the same elements and a new shape.

        Elements are read in `order` ("C": last axis fastest, "F": first axis
        fastest) and laid out in the same order.

        Returns
        -------
        Array
            A read-only view when the current layout is contiguous in `order`,
            otherwise a new owned array.

        Raises
        ------
        ShapeMismatchError
            If the element counts differ.
        """
        _check_order(order)
        new_dim, strides = self._reshaped_layout(shape, order)
        if strides is not None:
            return self._derive(self._offset, new_dim, strides, False)
        if order == "C":
            return self._new_owned(self.to_numpy().reshape(-1), new_dim)
        flat = self.to_numpy().reshape(-1, order="F")
        return type(self)(OwnedStorage(flat), 0, new_dim, new_dim.fortran_strides(), check=False)

    def into_shape(self, shape: DimLike, order: str = "C") -> Any:
        """
        Consume the array and reinterpret it with a new shape, without copying.

        Raises
        ------
        ShapeMismatchError
            If the element counts differ, or the layout is not contiguous in
            `order`.
        """
        _check_order(order)
        new_dim, strides = self._reshaped_layout(shape, order)
        if strides is None:
            raise ShapeMismatchError(
                f"incompatible memory layout for into_shape with order {order!r}",
                self.shape,
                tuple(new_dim),
            )
        return self._relayout(self._offset, new_dim, strides)

    # ------------------------------------------------------------------
    # axis permutations
    # ------------------------------------------------------------------
    def reversed_axes(self) -> Any:
        """Consume the array and reverse the order of its axes."""
        n = self.ndim
        order = list(range(n - 1, -1, -1))
        return self._relayout(
            self._offset, self._dim.permuted(order), self._strides.permuted(order)
        )

    def t(self) -> Any:
        """Read-only transposed view (axes reversed)."""
        return self.view().reversed_axes()

    @property
    def T(self) -> Any:
        return self.t()

    def permuted_axes(self, axes: Sequence[int]) -> Any:
        """
        Consume the array and reorder its axes: result axis `i` is input axis
        `axes[i]`.

        Raises
        ------
        ValueError
            If `axes` is not a permutation of `range(ndim)`.
        """
        n = self.ndim
        axes = [int(a) for a in axes]
        if len(axes) != n or sorted(normalize_axis(a, n) for a in axes) != list(range(n)):
            raise ValueError(f"{tuple(axes)} is not a permutation of {n} axes")
        axes = [normalize_axis(a, n) for a in axes]
        return self._relayout(
            self._offset, self._dim.permuted(axes), self._strides.permuted(axes)
        )

    def swap_axes(self, a: int, b: int) -> None:
        """Swap two axes in place."""
        self._check_alive()
        a = normalize_axis(a, self.ndim)
        b = normalize_axis(b, self.ndim)
        order = list(range(self.ndim))
        order[a], order[b] = order[b], order[a]
        self._dim = self._dim.permuted(order)
        self._strides = self._strides.permuted(order)

    def invert_axis(self, axis: int) -> None:
        """Reverse the direction of `axis` in place."""
        self._check_alive()
        ax = normalize_axis(axis, self.ndim)
        d = self._dim[ax]
        s = self._strides[ax]
        if d > 0:
            self._offset += (d - 1) * s
        self._strides = self._strides.set_axis(ax, -s)

    def merge_axes(self, take: int, into: int) -> bool:
        """
        Try to fold axis `take` into axis `into` in place.

        On success `into` holds the product of both lengths and `take` is
        left with length 1 (0 if the array is empty). The merge succeeds when
        either axis has length <= 1, or when `take` steps exactly over one full
        run of `into`.

        Returns
        -------
        bool
            Whether the axes were merged.
        """
        self._check_alive()
        take = normalize_axis(take, self.ndim)
        into = normalize_axis(into, self.ndim)
        into_len, take_len = self._dim[into], self._dim[take]
        into_stride, take_stride = self._strides[into], self._strides[take]
        merged = into_len * take_len
        rest = 0 if merged == 0 else 1

        if take_len <= 1:
            self._dim = self._dim.set_axis(into, merged).set_axis(take, rest)
        elif into_len <= 1:
            self._strides = self._strides.set_axis(into, take_stride)
            self._dim = self._dim.set_axis(into, merged).set_axis(take, rest)
        elif take_stride == into_len * into_stride:
            self._dim = self._dim.set_axis(into, merged).set_axis(take, 1)
        else:
            return False
        return True

    def insert_axis(self, axis: int) -> Any:
        """Consume the array and insert a length-1 axis at `axis`."""
        ax = normalize_axis(axis, self.ndim + 1)
        return self._relayout(
            self._offset, self._dim.insert_axis(ax, 1), self._strides.insert_axis(ax, 0)
        )

    def remove_axis(self, axis: int) -> Any:
        """
        Consume the array and drop `axis`, which must have length 1.

        Raises
        ------
        ShapeMismatchError
            If the axis length is not 1.
        """
        ax = normalize_axis(axis, self.ndim)
        if self._dim[ax] != 1:
            raise ShapeMismatchError(
                f"remove_axis: axis {ax} has length {self._dim[ax]}, expected 1",
                self.shape,
            )
        return self._relayout(
            self._offset, self._dim.remove_axis(ax), self._strides.remove_axis(ax)
        )

    # ------------------------------------------------------------------
    # rank conversions
    # ------------------------------------------------------------------
    def into_dyn(self) -> Any:
        """Consume the array into the dynamic-rank family."""
        return self._relayout(self._offset, self._dim.into_dyn(), self._strides.into_dyn())

    def into_dimensionality(self, target: Union[int, Type[Dim]]) -> Any:
        """
        Consume the array into another rank family.

        Raises
        ------
        RankMismatchError
            If a fixed rank is requested that differs from `ndim`.
        """
        dim = self._dim.into_dimensionality(target)
        strides = self._strides.into_dimensionality(target)
        return self._relayout(self._offset, dim, strides)

    # ------------------------------------------------------------------
    # broadcasting
    # ------------------------------------------------------------------
    def broadcast(self, shape: DimLike) -> Any:
        """
        Read-only view of the array stretched to `shape`.

        Stretched and prepended axes get stride 0, so several indices read the
        same element; the view can never be written.

        Raises
        ------
        ShapeMismatchError
            If the array cannot be broadcast to `shape`.
        """
        to_dim = as_shape(shape)
        strides = upcast(to_dim, self._dim, self._strides)
        if strides is None:
            raise ShapeMismatchError(
                f"cannot broadcast shape {self.shape} to {tuple(to_dim)}",
                self.shape,
                tuple(to_dim),
            )
        return self._derive(self._offset, to_dim, strides, False, allow_overlap=True)

    def broadcast_with(self, other: Any) -> tuple[Any, Any]:
        """
        Read-only views of both arrays broadcast to their common shape.

        Raises
        ------
        ShapeMismatchError
            If the shapes are incompatible.
        """
        common = co_broadcast(self.raw_dim, other.raw_dim)
        return self.broadcast(common), other.broadcast(common)

    def is_square(self) -> bool:
        """True if every axis has the same length (rank 0 counts as square)."""
        return len(set(self.shape)) <= 1
