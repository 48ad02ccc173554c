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

"""
Strategies plugged into the :class:`~curvecalib.solver.VectorRootFinder`.

An *estimate* is either an approximation of the Jacobian, :math:`J`, or of its inverse,
:math:`H = J^{-1}`. Each strategy declares which one it expects or produces with the
``uses_inverse`` attribute and the root finder checks the three strategies it is given
are consistent.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import numpy as np

from curvecalib import defaults
from curvecalib.default import NoInput, _drb
from curvecalib.errors import (
    IE_JACOBIAN_SHAPE,
    NO_JACOBIAN_NOT_FINITE,
    InvalidInput,
    NumericalOverflow,
)
from curvecalib.solver.decomposition import _BaseDecomposition, get_decomposition

logger = logging.getLogger(__name__)

Arr1dF64 = np.ndarray[tuple[int], np.dtype[np.float64]]
Arr2dF64 = np.ndarray[tuple[int, int], np.dtype[np.float64]]
JacobianFunction = Callable[[Arr1dF64], Any]


def _evaluate_jacobian(jacobian_fn: JacobianFunction, x: Arr1dF64) -> Arr2dF64:
    J = np.asarray(jacobian_fn(x), dtype=np.float64)
    n = x.shape[0]
    if J.shape != (n, n):
        raise InvalidInput(IE_JACOBIAN_SHAPE.format(J.shape, n))
    if not np.all(np.isfinite(J)):
        raise NumericalOverflow(NO_JACOBIAN_NOT_FINITE.format(J.tolist()))
    return J


# Direction


class _BaseDirection(ABC):
    uses_inverse: bool

    @abstractmethod
    def get_direction(self, estimate: Arr2dF64, y: Arr1dF64) -> Arr1dF64:
        """
        Return the Newton step, :math:`\\Delta x`, for the residual ``y``.

        The root finder proposes :math:`x_{new} = x - \\Delta x`.
        """
        pass  # pragma: no cover


class DirectSolveDirection(_BaseDirection):
    """
    Solve :math:`J \\Delta x = y` exactly on every call.

    Parameters
    ----------
    decomposition: str or decomposition, optional
        The decomposition strategy used to solve the linear system. Defaults to
        ``defaults.decomposition``.
    """

    uses_inverse = False

    def __init__(self, decomposition: str | _BaseDecomposition | NoInput = NoInput(0)) -> None:
        self.decomposition = get_decomposition(decomposition)

    def get_direction(self, estimate: Arr2dF64, y: Arr1dF64) -> Arr1dF64:
        return self.decomposition.decompose(estimate).solve(y)


class InverseJacobianDirection(_BaseDirection):
    """Multiply a cached inverse Jacobian estimate, :math:`\\Delta x = H y`."""

    uses_inverse = True

    def get_direction(self, estimate: Arr2dF64, y: Arr1dF64) -> Arr1dF64:
        return np.matmul(estimate, y)


# Initialization


class _BaseInitialization(ABC):
    uses_inverse: bool

    @abstractmethod
    def initialize(self, jacobian_fn: JacobianFunction, x0: Arr1dF64) -> Arr2dF64:
        """Return the estimate used by the first iteration."""
        pass  # pragma: no cover


class JacobianInitialization(_BaseInitialization):
    """Start from the Jacobian evaluated at the initial guess."""

    uses_inverse = False

    def initialize(self, jacobian_fn: JacobianFunction, x0: Arr1dF64) -> Arr2dF64:
        return _evaluate_jacobian(jacobian_fn, x0)


class InverseJacobianInitialization(_BaseInitialization):
    """
    Start from the inverse of the Jacobian evaluated at the initial guess.

    Raises :class:`~curvecalib.errors.SingularMatrix` if that Jacobian is degenerate.
    """

    uses_inverse = True

    def __init__(self, decomposition: str | _BaseDecomposition | NoInput = NoInput(0)) -> None:
        self.decomposition = get_decomposition(decomposition)

    def initialize(self, jacobian_fn: JacobianFunction, x0: Arr1dF64) -> Arr2dF64:
        return self.decomposition.decompose(_evaluate_jacobian(jacobian_fn, x0)).inverse()


# Update


class _BaseUpdate(ABC):
    uses_inverse: bool

    @abstractmethod
    def get_updated_estimate(
        self,
        jacobian_fn: JacobianFunction,
        x_new: Arr1dF64,
        dx: Arr1dF64,
        dy: Arr1dF64,
        estimate: Arr2dF64,
    ) -> Arr2dF64:
        """Return the estimate for the next iteration."""
        pass  # pragma: no cover


class JacobianRecompute(_BaseUpdate):
    """Evaluate the Jacobian afresh at every iteration."""

    uses_inverse = False

    def get_updated_estimate(self, jacobian_fn, x_new, dx, dy, estimate):  # type: ignore[no-untyped-def]
        return _evaluate_jacobian(jacobian_fn, x_new)


class BroydenUpdate(_BaseUpdate):
    """
    Broyden's secant rank-one update of the Jacobian.

    .. math::

       J_{k+1} = J_k + \\frac{(\\Delta y - J_k \\Delta x) \\Delta x^T}{\\Delta x^T \\Delta x}

    Parameters
    ----------
    min_step: float, optional
        If :math:`\\Delta x^T \\Delta x` does not exceed this value the update is undefined and
        the Jacobian is recomputed instead. Defaults to ``defaults.broyden_min_step``.
    """

    uses_inverse = False

    def __init__(self, min_step: float | NoInput = NoInput(0)) -> None:
        self.min_step = _drb(defaults.broyden_min_step, min_step)

    def get_updated_estimate(self, jacobian_fn, x_new, dx, dy, estimate):  # type: ignore[no-untyped-def]
        dx_dx = np.dot(dx, dx)
        if dx_dx <= self.min_step:
            logger.debug("Broyden update degenerate, `dx.dx`=%s: recomputing Jacobian.", dx_dx)
            return _evaluate_jacobian(jacobian_fn, x_new)
        return estimate + np.outer(dy - np.matmul(estimate, dx), dx) / dx_dx


class InverseJacobianRecompute(_BaseUpdate):
    """
    Evaluate and invert the Jacobian afresh at every iteration.

    Parameters
    ----------
    decomposition: str or decomposition, optional
        The decomposition strategy used to invert the Jacobian.
    """

    uses_inverse = True

    def __init__(self, decomposition: str | _BaseDecomposition | NoInput = NoInput(0)) -> None:
        self.decomposition = get_decomposition(decomposition)

    def get_updated_estimate(self, jacobian_fn, x_new, dx, dy, estimate):  # type: ignore[no-untyped-def]
        return self.decomposition.decompose(_evaluate_jacobian(jacobian_fn, x_new)).inverse()


class ShermanMorrisonUpdate(_BaseUpdate):
    """
    Broyden's update applied directly to the inverse Jacobian via the Sherman-Morrison formula.

    .. math::

       H_{k+1} = H_k + \\frac{(\\Delta x - H_k \\Delta y) \\Delta x^T H_k}{\\Delta x^T H_k \\Delta y}

    If the denominator is degenerate the Jacobian is recomputed and inverted.

    Parameters
    ----------
    decomposition: str or decomposition, optional
        The decomposition strategy used when falling back to an explicit inversion.
    min_step: float, optional
        The absolute size of the denominator at or below which the fallback is used. Defaults to
        ``defaults.broyden_min_step``.
    """

    uses_inverse = True

    def __init__(
        self,
        decomposition: str | _BaseDecomposition | NoInput = NoInput(0),
        min_step: float | NoInput = NoInput(0),
    ) -> None:
        self.decomposition = get_decomposition(decomposition)
        self.min_step = _drb(defaults.broyden_min_step, min_step)

    def get_updated_estimate(self, jacobian_fn, x_new, dx, dy, estimate):  # type: ignore[no-untyped-def]
        dxT_H = np.matmul(dx, estimate)
        denominator = np.dot(dxT_H, dy)
        if abs(denominator) <= self.min_step or not np.isfinite(denominator):
            logger.debug(
                "Sherman-Morrison update degenerate, denominator=%s: recomputing inverse.",
                denominator,
            )
            return self.decomposition.decompose(_evaluate_jacobian(jacobian_fn, x_new)).inverse()
        return estimate + np.outer(dx - np.matmul(estimate, dy), dxT_H) / denominator
