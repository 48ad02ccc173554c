# SPDX-License-Identifier: LicenseRef-Rateslib-Dual
#
# Copyright (c) 2026 Siffrorna Technology Limited
#
# Dual-licensed: Free Educational Licence or Paid Commercial Licence (commercial/professional use)
# Source-available, not open source.
#
# See LICENSE and https://rateslib.com/py/en/latest/i_licence.html for details,
# and/or contact info (at) rateslib (dot) com
####################################################################################################

from __future__ import annotations

from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Any
from uuid import uuid4

import numpy as np

from curvecalib import defaults
from curvecalib.curves.interpolation import (
    DF_ONLY_INTERPOLATION,
    INTERPOLATION,
    InterpolationFunction,
)
from curvecalib.default import NoInput, PlotOutput, _drb, plot
from curvecalib.errors import (
    IE_EMPTY_NODES,
    IE_NODES_NOT_INCREASING,
    IE_UNKNOWN_INTERPOLATION,
    InvalidInput,
)


class _CurveType(Enum):
    """
    Enumerable type to define the difference between discount factor based *Curves* and
    values based *Curves*.
    """

    dfs = 0
    values = 1


@dataclass(frozen=True)
class _CurveNodes:
    """
    An immutable container for the node abscissas and values of a curve.
    """

    _nodes: dict[float, float]

    def __post_init__(self) -> None:
        if self.n == 0:
            raise InvalidInput(IE_EMPTY_NODES)
        keys = np.array(self.keys, dtype=np.float64)
        if not np.all(np.isfinite(keys)) or np.any(np.diff(keys) <= 0.0):
            raise InvalidInput(IE_NODES_NOT_INCREASING.format(self.keys))

    @property
    def nodes(self) -> dict[float, float]:
        """The nodes dict passed for construction of this class."""
        return self._nodes

    @cached_property
    def keys(self) -> tuple[float, ...]:
        """The node abscissas, as year fractions."""
        return tuple(self._nodes.keys())

    @cached_property
    def values(self) -> tuple[float, ...]:
        """The node values."""
        return tuple(self._nodes.values())

    @property
    def n(self) -> int:
        """Number of nodes."""
        return len(self._nodes)

    @property
    def initial(self) -> float:
        """The first node abscissa."""
        return self.keys[0]

    @property
    def final(self) -> float:
        """The last node abscissa."""
        return self.keys[-1]


def _get_interpolation(
    interpolation: str | InterpolationFunction, curve_type: _CurveType
) -> tuple[str, InterpolationFunction]:
    if callable(interpolation):
        return getattr(interpolation, "__name__", "user_defined"), interpolation
    name = interpolation.lower()
    if name not in INTERPOLATION or (
        curve_type is _CurveType.values and name in DF_ONLY_INTERPOLATION
    ):
        allowed = [
            k
            for k in INTERPOLATION
            if curve_type is _CurveType.dfs or k not in DF_ONLY_INTERPOLATION
        ]
        raise InvalidInput(IE_UNKNOWN_INTERPOLATION.format(name, allowed))
    return name, INTERPOLATION[name]


class _BaseCurve(ABC):
    """
    Base class for the immutable curves produced by a
    :class:`~curvecalib.curves.CurveGenerator`.

    Node abscissas are year fractions measured from a common reference time of zero.
    Values between nodes are given by the ``interpolation`` function and the first and last
    segments are extended beyond the node range.
    """

    _base_type: _CurveType
    _node_type: _CurveType
    _interpolation_default: str

    def __init__(
        self,
        nodes: dict[float, float],
        *,
        interpolation: str | InterpolationFunction | NoInput = NoInput(0),
        id: str | NoInput = NoInput(0),  # noqa: A002
    ) -> None:
        self._id = _drb(uuid4().hex[:5], id)  # 1 in a million clash
        self._nodes = _CurveNodes({float(k): float(v) for k, v in nodes.items()})
        self._interpolation, self._interpolator = _get_interpolation(
            _drb(defaults.interpolation[self._interpolation_default], interpolation),
            self._node_type,
        )

    @property
    def id(self) -> str:
        """A str identifier to name the *Curve* used in sensitivity labelling."""
        return self._id

    @property
    def nodes(self) -> _CurveNodes:
        """An instance of :class:`~curvecalib.curves.curves._CurveNodes`."""
        return self._nodes

    @property
    def interpolation(self) -> str:
        """The name of the interpolation function."""
        return self._interpolation

    def __getitem__(self, t: float) -> float:
        value = self._nodes.nodes.get(t, None)
        if value is not None:
            return value
        elif self._nodes.n == 1:
            return self._nodes.values[0]
        return self._interpolator(t, self)

    def _get_node_vector(self) -> np.ndarray[tuple[int], np.dtype[np.float64]]:
        """Get a 1d array of the node values"""
        return np.array(self._nodes.values, dtype=np.float64)

    @abstractmethod
    def rate(self, t1: float, t2: float | NoInput = NoInput(0)) -> float:
        pass  # pragma: no cover

    # Rate Plotting

    def plot(
        self,
        tenor: float = 0.25,
        right: float | NoInput = NoInput(0),
        left: float | NoInput = NoInput(0),
        comparators: list[_BaseCurve] | NoInput = NoInput(0),
        difference: bool = False,
        labels: list[str] | NoInput = NoInput(0),
        points: int = 101,
    ) -> PlotOutput:
        """
        Plot given forward tenor rates from the curve.

        Parameters
        ----------
        tenor : float
            The length, as a year fraction, of the forward periods to plot.
        right : float, optional
            The right bound of the graph. Defaults to the final node minus the ``tenor``.
        left : float, optional
            The left bound of the graph. Defaults to the initial node of the curve.
        comparators: list[Curve]
            A list of curves which to include on the same plot as comparators.
        difference : bool
            Whether to plot as comparator minus base curve or outright curve levels in
            plot. Default is `False`.
        labels : list[str]
            A list of strings associated with the plot and comparators. Must be same
            length as number of plots.
        points : int
            The number of equally spaced abscissas at which rates are plotted.

        Returns
        -------
        (fig, ax, line) : Matplotlib.Figure, Matplotplib.Axes, Matplotlib.Lines2D
        """
        comparators_: list[_BaseCurve] = _drb([], comparators)
        left_ = _drb(self._nodes.initial, left)
        right_ = _drb(max(self._nodes.final - tenor, left_), right)
        x = list(np.linspace(left_, right_, points))
        y = [self.rate(_, _ + tenor) for _ in x]
        if not difference:
            y_ = [y] + [[c.rate(_, _ + tenor) for _ in x] for c in comparators_]
        elif len(comparators_) == 0:
            raise ValueError("If `difference` is True must supply at least one `comparators`.")
        else:
            y_ = [
                [c.rate(_x, _x + tenor) - _y for _x, _y in zip(x, y, strict=True)]
                for c in comparators_
            ]
        return plot([x] * len(y_), y_, labels)

    # Dunder operators

    def __eq__(self, other: Any) -> bool:
        """Test two curves are identical"""
        if type(self) is not type(other):
            return False
        return (
            self._id == other._id
            and self._nodes == other._nodes
            and self._interpolation == other._interpolation
        )

    def __hash__(self) -> int:
        return hash((type(self), self._id, self._nodes.keys, self._nodes.values))

    def __repr__(self) -> str:
        return f"<cc.{type(self).__name__}:{self._id} at {hex(id(self))}>"

    def copy(self) -> _BaseCurve:
        """
        Create an identical copy of the curve object.

        Returns
        -------
        Curve, ZeroCurve or LineCurve
        """
        return deepcopy(self)


class _DiscountCurve(_BaseCurve):
    """A curve from which discount factors can be derived."""

    _base_type = _CurveType.dfs

    @abstractmethod
    def df(self, t: float) -> float:
        """Return the discount factor at time ``t``."""
        pass  # pragma: no cover

    def zero_rate(self, t: float) -> float:
        """
        Return the continuously compounded zero rate, in percent, to time ``t``.

        Raises
        ------
        InvalidInput
            If ``t`` is not positive.
        """
        if t <= 0.0:
            raise InvalidInput(f"`t` must be positive to derive a zero rate, got {t}.")
        return float(-np.log(self.df(t)) / t * 100.0)

    def rate(self, t1: float, t2: float | NoInput = NoInput(0)) -> float:
        """
        Calculate the simple interest forward rate, in percent, between two times.

        .. math::

           1 + r (t_2 - t_1) = \\frac{v(t_1)}{v(t_2)}

        Parameters
        ----------
        t1 : float
            The start of the period.
        t2 : float
            The end of the period. Must be after ``t1``.

        Returns
        -------
        float
        """
        if isinstance(t2, NoInput) or t2 <= t1:
            raise InvalidInput(f"`t2` must be after `t1`, got ({t1}, {t2}).")
        return (self.df(t1) / self.df(t2) - 1.0) / (t2 - t1) * 100.0


class Curve(_DiscountCurve):
    """
    A discount factor curve.

    Parameters
    ----------
    nodes : dict[float, float]
        Year fraction abscissas mapped to discount factors.
    interpolation : str or callable, optional
        One of *{"linear", "log_linear", "linear_zero_rate", "flat_forward",
        "flat_backward"}* or a function of signature `f(t, curve) -> float`. Defaults to
        ``defaults.interpolation["dfs"]``.
    id : str, optional
        The curve identifier. A random one is generated if not given.

    Examples
    --------
    .. ipython:: python

       from curvecalib.curves import Curve

       curve = Curve({0.0: 1.0, 1.0: 0.98, 2.0: 0.955}, id="sofr")
       curve.df(1.5)
       curve.rate(1.0, 2.0)
    """

    _node_type = _CurveType.dfs
    _interpolation_default = "dfs"

    def df(self, t: float) -> float:
        return self[t]


class ZeroCurve(_DiscountCurve):
    """
    A curve parametrised by continuously compounded zero rates, in percent.

    Parameters
    ----------
    nodes : dict[float, float]
        Year fraction abscissas mapped to zero rates.
    interpolation : str or callable, optional
        Any of the values based interpolation functions. Defaults to
        ``defaults.interpolation["zero_rates"]``.
    id : str, optional
        The curve identifier.
    """

    _node_type = _CurveType.values
    _interpolation_default = "zero_rates"

    def df(self, t: float) -> float:
        return float(np.exp(-self[t] / 100.0 * t))

    def zero_rate(self, t: float) -> float:
        return self[t]


class LineCurve(_BaseCurve):
    """
    A curve of directly interpolated values, e.g. forward projection rates in percent.

    Parameters
    ----------
    nodes : dict[float, float]
        Year fraction abscissas mapped to values.
    interpolation : str or callable, optional
        Any of the values based interpolation functions. Defaults to
        ``defaults.interpolation["values"]``.
    id : str, optional
        The curve identifier.
    """

    _base_type = _CurveType.values
    _node_type = _CurveType.values
    _interpolation_default = "values"

    def rate(self, t1: float, t2: float | NoInput = NoInput(0)) -> float:
        """
        Return the curve value at ``t1``.

        ``t2`` is not used and is only accepted for compatibility with discount factor curves.
        """
        return self[t1]


class SpreadZeroCurve(_DiscountCurve):
    """
    A discount curve formed by adding a spread of continuously compounded zero rates to a
    base discount curve.

    .. math::

       v(t) = v_{base}(t) e^{-z(t) t / 100}

    Parameters
    ----------
    base : Curve, ZeroCurve or SpreadZeroCurve
        The discount curve the spread is added to. It is held by reference.
    nodes : dict[float, float]
        Year fraction abscissas mapped to zero rate spreads, in percent.
    interpolation : str or callable, optional
        Any of the values based interpolation functions for the spread. Defaults to
        ``defaults.interpolation["zero_rates"]``.
    id : str, optional
        The curve identifier.

    Examples
    --------
    .. ipython:: python

       from curvecalib.curves import Curve, SpreadZeroCurve

       base = Curve({0.0: 1.0, 5.0: 0.9}, id="ois")
       curve = SpreadZeroCurve(base, {0.0: 0.25, 5.0: 0.30}, id="libor")
       curve.zero_rate(5.0) - base.zero_rate(5.0)
    """

    _node_type = _CurveType.values
    _interpolation_default = "zero_rates"

    def __init__(
        self,
        base: _DiscountCurve,
        nodes: dict[float, float],
        *,
        interpolation: str | InterpolationFunction | NoInput = NoInput(0),
        id: str | NoInput = NoInput(0),  # noqa: A002
    ) -> None:
        if not isinstance(base, _DiscountCurve):
            raise InvalidInput(
                f"`base` must be a discount factor based curve, got {type(base).__name__}."
            )
        self._base = base
        super().__init__(nodes, interpolation=interpolation, id=id)

    @property
    def base(self) -> _DiscountCurve:
        """The discount curve to which the spread is added."""
        return self._base

    def df(self, t: float) -> float:
        return self._base.df(t) * float(np.exp(-self[t] / 100.0 * t))

    def __eq__(self, other: Any) -> bool:
        return super().__eq__(other) and self._base == other._base

    def __hash__(self) -> int:
        return hash((super().__hash__(), self._base))
