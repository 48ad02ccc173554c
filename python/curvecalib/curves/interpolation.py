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

from bisect import bisect_left
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

if TYPE_CHECKING:
    from curvecalib.curves.curves import _BaseCurve  # pragma: no cover


class InterpolationFunction(Protocol):
    # Callable type for Interpolation Functions
    def __call__(self, t: float, curve: _BaseCurve) -> float: ...


def _get_interval(t: float, curve: _BaseCurve) -> tuple[float, float, float, float, int]:
    keys, values = curve.nodes.keys, curve.nodes.values
    i = index_left(keys, curve.nodes.n, t)
    return keys[i], keys[i + 1], values[i], values[i + 1], i


def _linear(t: float, curve: _BaseCurve) -> float:
    x_1, x_2, y_1, y_2, _ = _get_interval(t, curve)
    return y_1 + (y_2 - y_1) * (t - x_1) / (x_2 - x_1)


def _log_linear(t: float, curve: _BaseCurve) -> float:
    x_1, x_2, y_1, y_2, _ = _get_interval(t, curve)
    # non-positive values give nan, which the root finder reports as non-finite
    with np.errstate(invalid="ignore", divide="ignore"):
        y_1, y_2 = np.log(y_1), np.log(y_2)
        return float(np.exp(y_1 + (y_2 - y_1) * (t - x_1) / (x_2 - x_1)))


def _flat_forward(t: float, curve: _BaseCurve) -> float:
    x_1, x_2, y_1, y_2, _ = _get_interval(t, curve)
    if t >= x_2:
        return y_2
    return y_1


def _flat_backward(t: float, curve: _BaseCurve) -> float:
    x_1, x_2, y_1, y_2, _ = _get_interval(t, curve)
    if t <= x_1:
        return y_1
    return y_2


def _linear_zero_rate(t: float, curve: _BaseCurve) -> float:
    # node values are discount factors and time is measured from zero.
    x_1, x_2, y_1, y_2, _ = _get_interval(t, curve)
    with np.errstate(invalid="ignore", divide="ignore"):
        r_2 = -np.log(y_2) / x_2
        if x_1 <= 0.0:
            # first period uses the flat backward zero rate
            r_m = r_2
        else:
            r_1 = -np.log(y_1) / x_1
            r_m = r_1 + (r_2 - r_1) * (t - x_1) / (x_2 - x_1)
        return float(np.exp(-r_m * t))


INTERPOLATION: dict[str, InterpolationFunction] = {
    "linear": _linear,
    "log_linear": _log_linear,
    "linear_zero_rate": _linear_zero_rate,
    "flat_forward": _flat_forward,
    "flat_backward": _flat_backward,
}

# interpolation modes which presume the node values are discount factors
DF_ONLY_INTERPOLATION = ("linear_zero_rate",)


def index_left(
    list_input: list[Any] | tuple[Any, ...],
    list_length: int,
    value: Any,
) -> int:
    """
    Return the interval index of a value from an ordered input list on the left side.

    Parameters
    ----------
    list_input : list
        Ordered list (lowest to highest) containing datatypes the same as value.
    list_length : int
        The length of ``list_input``.
    value : Any
        The value for which to determine the list index of.

    Returns
    -------
    int : The left index of the interval within which value is found (or extrapolated
          from)

    Notes
    -----
    Uses a binary search which operates with time :math:`O(log_2 n)`.

    Examples
    --------
    .. ipython:: python

       from curvecalib.curves.interpolation import index_left

    Out of domain values return the left-side index of the closest matching interval.
    100 is attributed to the interval (1, 2].

    .. ipython:: python

       list = [0, 1, 2]
       index_left(list, 3, 100)

    -100 is attributed to the interval (0, 1].

    .. ipython:: python

       index_left(list, 3, -100)

    1 is attributed to the interval (0, 1].

    .. ipython:: python

       index_left(list, 3, 1)

    """
    if list_length < 2:
        raise ValueError("`index_left` designed for intervals. Cannot index list of length 1.")
    i = bisect_left(list_input, value) - 1
    return min(max(i, 0), list_length - 2)
