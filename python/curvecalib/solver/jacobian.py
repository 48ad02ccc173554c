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

from collections.abc import Callable
from typing import Any

import numpy as np

from curvecalib import defaults
from curvecalib.default import NoInput, _drb
from curvecalib.errors import NO_NOT_FINITE, InvalidInput, NumericalOverflow

_EPS = np.finfo(np.float64).eps

FD_SHIFTS = {
    "forward": _EPS**0.5,
    "central": _EPS ** (1.0 / 3.0),
}


def finite_difference_jacobian(
    f: Callable[[np.ndarray[tuple[int], np.dtype[np.float64]]], Any],
    x: Any,
    y: Any = None,
    method: str | NoInput = NoInput(0),
    shift: float | NoInput = NoInput(0),
) -> np.ndarray[tuple[int, int], np.dtype[np.float64]]:
    """
    Approximate the Jacobian of a vector function by finite differences.

    Parameters
    ----------
    f: callable
        The vector function of signature `f(x) -> array_like`.
    x: array_like
        The point at which to evaluate the Jacobian.
    y: array_like, optional
        The value of ``f(x)`` if already known. Only used by the *"forward"* method.
    method: str in {"forward", "central"}, optional
        The differencing scheme. Defaults to ``defaults.fd_method``.
    shift: float, optional
        The relative bump size. The absolute bump of variable *j* is
        :math:`h \\max(1, |x_j|)`. Defaults to the square root (forward) or cube root
        (central) of machine epsilon, or ``defaults.fd_shift`` if that is set.

    Returns
    -------
    ndarray of shape (m, n) with :math:`J_{ij} = \\partial f_i / \\partial x_j`.
    """
    method = _drb(defaults.fd_method, method).lower()
    if method not in FD_SHIFTS:
        raise InvalidInput(f"`method`: '{method}' must be in {list(FD_SHIFTS)}.")
    shift = _drb(_drb(FD_SHIFTS[method], defaults.fd_shift), shift)

    x = np.asarray(x, dtype=np.float64)
    n = x.shape[0]
    steps = shift * np.maximum(1.0, np.abs(x))

    if method == "forward":
        y0 = np.asarray(f(x) if y is None else y, dtype=np.float64)
        J = np.empty((y0.shape[0], n))
        for j in range(n):
            x_up = x.copy()
            x_up[j] += steps[j]
            J[:, j] = (np.asarray(f(x_up), dtype=np.float64) - y0) / (x_up[j] - x[j])
    else:
        columns = []
        for j in range(n):
            x_up, x_dn = x.copy(), x.copy()
            x_up[j] += steps[j]
            x_dn[j] -= steps[j]
            y_up = np.asarray(f(x_up), dtype=np.float64)
            y_dn = np.asarray(f(x_dn), dtype=np.float64)
            columns.append((y_up - y_dn) / (x_up[j] - x_dn[j]))
        J = np.column_stack(columns) if columns else np.empty((0, 0))

    if not np.all(np.isfinite(J)):
        raise NumericalOverflow(NO_NOT_FINITE.format("jacobian", "-"))
    return J
