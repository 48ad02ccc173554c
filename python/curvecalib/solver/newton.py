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

import logging
from collections.abc import Callable
from time import time
from typing import Any

import numpy as np

from curvecalib import defaults
from curvecalib.default import NoInput, _drb
from curvecalib.errors import (
    CF_MAX_ITER,
    IE_INCONSISTENT_STRATEGIES,
    IE_NOT_SQUARE_SYSTEM,
    IE_UNKNOWN_ROOT_FINDER,
    NO_NOT_FINITE,
    NO_ZERO_DERIVATIVE,
    ConvergenceFailure,
    InvalidInput,
    NumericalOverflow,
    SingularMatrix,
)
from curvecalib.solver.decomposition import _BaseDecomposition, get_decomposition
from curvecalib.solver.jacobian import finite_difference_jacobian
from curvecalib.solver.strategies import (
    BroydenUpdate,
    DirectSolveDirection,
    InverseJacobianDirection,
    InverseJacobianInitialization,
    InverseJacobianRecompute,
    JacobianInitialization,
    JacobianRecompute,
    ShermanMorrisonUpdate,
    _BaseDirection,
    _BaseInitialization,
    _BaseUpdate,
)
from curvecalib.solver.utils import _all_finite, _solver_result

logger = logging.getLogger(__name__)

Arr1dF64 = np.ndarray[tuple[int], np.dtype[np.float64]]


def newton_1dim(
    f: Callable[..., tuple[float, float]],
    g0: float,
    max_iter: int = 50,
    func_tol: float = 1e-14,
    conv_tol: float = 1e-9,
    args: tuple[Any, ...] = (),
    raise_on_fail: bool = True,
) -> dict[str, Any]:
    """
    Use the Newton-Raphson algorithm to determine the root of a function searching **one** variable.

    Solves the root equation :math:`f(g; s_i)=0` for *g*.

    Parameters
    ----------
    f: callable
        The function, *f*, to find the root of. Of the signature: `f(g, *args)`.
        Must return a tuple where the second value is the derivative of *f* with respect to *g*.
    g0: float
        Initial guess of the root. Should be reasonable to avoid failure.
    max_iter: int
        The maximum number of iterations to try before exiting.
    func_tol: float, optional
        The absolute function tolerance to reach before exiting.
    conv_tol: float, optional
        The convergence tolerance for subsequent iterations of *g*.
    args: tuple
        Additional arguments passed to ``f``.
    raise_on_fail: bool, optional
        If *False* will return a solver result dict with state and message indicating failure.

    Returns
    -------
    dict

    Examples
    --------
    Iteratively solve the equation: :math:`f(g, s) = g^2 - s = 0`.

    .. ipython:: python

       from curvecalib.solver import newton_1dim

       def f(g, s):
           f0 = g**2 - s   # Function value
           f1 = 2*g        # Analytical derivative is required
           return f0, f1

       newton_1dim(f, g0=1.0, args=(2.0,))
    """
    t0 = time()
    i = 0
    g0 = float(g0)
    g1 = g0
    state = -1

    while i < max_iter:
        f0, f1 = f(g0, *args)
        i += 1
        if abs(f0) < func_tol:
            g1 = g0 - f0 / f1 if f1 != 0 else g0
            state = 2
            break
        if f1 == 0:
            raise NumericalOverflow(NO_ZERO_DERIVATIVE.format("newton_1dim", i))
        g1 = g0 - f0 / f1
        if abs(g1 - g0) < conv_tol:
            state = 1
            break
        g0 = g1

    if state == -1:
        if raise_on_fail:
            raise ConvergenceFailure(
                CF_MAX_ITER.format(max_iter, "newton_1dim", func_tol, abs(f0)),
                residual_norm=abs(f0),
                iterations=i,
            )
        else:
            return _solver_result(-1, i, g1, time() - t0, log=True, algo="newton_1dim")

    return _solver_result(state, i, g1, time() - t0, log=False, algo="newton_1dim")


ROOT_FINDERS: dict[str, Callable[[_BaseDecomposition], tuple[Any, Any, Any]]] = {
    "newton": lambda d: (
        DirectSolveDirection(d),
        JacobianRecompute(),
        JacobianInitialization(),
    ),
    "broyden": lambda d: (
        DirectSolveDirection(d),
        BroydenUpdate(),
        JacobianInitialization(),
    ),
    "sherman_morrison": lambda d: (
        InverseJacobianDirection(),
        ShermanMorrisonUpdate(d),
        InverseJacobianInitialization(d),
    ),
    "newton_inverse": lambda d: (
        InverseJacobianDirection(),
        InverseJacobianRecompute(d),
        InverseJacobianInitialization(d),
    ),
}


class VectorRootFinder:
    """
    A Newton-type root finder for square systems of nonlinear equations, :math:`F(x)=0`.

    Parameters
    ----------
    method: str, optional
        A preset combining the three strategies consistently. One of *{"newton", "broyden",
        "sherman_morrison", "newton_inverse"}*. Defaults to ``defaults.root_finder``. Any of
        ``direction``, ``update`` and ``initialization`` given explicitly replace the
        preset's choice.
    func_tol: float, optional
        Convergence is declared when the L2 norm of the residual is below this value.
        Defaults to ``defaults.func_tol``.
    max_iter: int, optional
        The maximum number of iterations. Defaults to ``defaults.max_iter``.
    decomposition: str or decomposition, optional
        The decomposition strategy used by the preset strategies. Defaults to
        ``defaults.decomposition``.
    direction: DirectSolveDirection or InverseJacobianDirection, optional
        The strategy computing the Newton step.
    update: JacobianRecompute, BroydenUpdate, InverseJacobianRecompute or ShermanMorrisonUpdate, optional
        The strategy producing the next iteration's estimate.
    initialization: JacobianInitialization or InverseJacobianInitialization, optional
        The strategy producing the first estimate.
    log: bool, optional
        Whether to log a summary of each solve at INFO (success) or WARNING (failure) level.
        Defaults to ``defaults.log_solver``.

    Notes
    -----
    Each iteration evaluates :math:`y=F(x)`, stops if :math:`\\|y\\|_2` is below ``func_tol``,
    and otherwise proposes :math:`x_{new} = x - \\Delta x` with :math:`\\Delta x` given by the
    ``direction`` strategy, before asking the ``update`` strategy for the next estimate.

    The instance records the outcome of the last solve in the ``result`` attribute. It holds
    no other state between solves but is not safe to share between concurrent calls.

    Examples
    --------
    .. ipython:: python

       from curvecalib.solver import VectorRootFinder

       def f(x):
           return [x[0] ** 2 + x[1] ** 2 - 2.0, x[0] - x[1]]

       VectorRootFinder().get_root(f, [2.0, 0.5])
    """

    def __init__(
        self,
        method: str | NoInput = NoInput(0),
        func_tol: float | NoInput = NoInput(0),
        max_iter: int | NoInput = NoInput(0),
        decomposition: str | _BaseDecomposition | NoInput = NoInput(0),
        direction: _BaseDirection | NoInput = NoInput(0),
        update: _BaseUpdate | NoInput = NoInput(0),
        initialization: _BaseInitialization | NoInput = NoInput(0),
        log: bool | NoInput = NoInput(0),
    ) -> None:
        self.method = _drb(defaults.root_finder, method).lower()
        if self.method not in ROOT_FINDERS:
            raise InvalidInput(IE_UNKNOWN_ROOT_FINDER.format(self.method, list(ROOT_FINDERS)))
        self.func_tol = _drb(defaults.func_tol, func_tol)
        self.max_iter = _drb(defaults.max_iter, max_iter)
        self.log = _drb(defaults.log_solver, log)
        self.decomposition = get_decomposition(decomposition)

        direction_, update_, initialization_ = ROOT_FINDERS[self.method](self.decomposition)
        self.direction = _drb(direction_, direction)
        self.update = _drb(update_, update)
        self.initialization = _drb(initialization_, initialization)

        for name, strategy in [("update", self.update), ("initialization", self.initialization)]:
            if strategy.uses_inverse != self.direction.uses_inverse:
                expected = "inverse" if self.direction.uses_inverse else "Jacobian"
                produced = "inverse" if strategy.uses_inverse else "Jacobian"
                raise InvalidInput(IE_INCONSISTENT_STRATEGIES.format(expected, name, produced))

        self.result: dict[str, Any] = {
            "status": "INITIALISED",
            "state": 0,
            "g": None,
            "iterations": 0,
            "time": None,
        }

    @classmethod
    def newton(cls, **kwargs: Any) -> VectorRootFinder:
        """Exact Jacobian recomputed every iteration, direct linear solve."""
        return cls(method="newton", **kwargs)

    @classmethod
    def broyden(cls, **kwargs: Any) -> VectorRootFinder:
        """Initial Jacobian followed by Broyden secant updates, direct linear solve."""
        return cls(method="broyden", **kwargs)

    @classmethod
    def sherman_morrison(cls, **kwargs: Any) -> VectorRootFinder:
        """Initial inverse Jacobian followed by Sherman-Morrison secant updates of the inverse."""
        return cls(method="sherman_morrison", **kwargs)

    def __repr__(self) -> str:
        return f"<cc.VectorRootFinder:{self.method} at {hex(id(self))}>"

    def get_root(
        self,
        f: Callable[[Arr1dF64], Any],
        x0: Any,
        jacobian: Callable[[Arr1dF64], Any] | NoInput | None = NoInput(0),
    ) -> Arr1dF64:
        """
        Determine the root of ``f`` starting from ``x0``.

        Parameters
        ----------
        f: callable
            The residual function `f(x) -> array_like`, returning as many values as ``x0``.
        x0: array_like
            The initial guess.
        jacobian: callable, optional
            A function `jacobian(x) -> array_like` of shape (n, n). If not given the Jacobian
            is approximated by :func:`~curvecalib.solver.finite_difference_jacobian`.

        Returns
        -------
        ndarray

        Raises
        ------
        InvalidInput
            If the system is not square.
        SingularMatrix
            If the decomposition of a Jacobian estimate fails.
        NumericalOverflow
            If a NaN or infinite value is produced.
        ConvergenceFailure
            If ``max_iter`` iterations are exhausted.
        """
        t0 = time()
        x = np.array(x0, dtype=np.float64)
        if isinstance(jacobian, NoInput) or jacobian is None:

            def jacobian_fn(x_: Arr1dF64) -> Any:
                return finite_difference_jacobian(f, x_)

        else:
            jacobian_fn = jacobian

        algo = f"vector_root_finder:{self.method}"
        i = 0
        try:
            y = self._evaluate(f, x, i)
            if y.shape != x.shape:
                raise InvalidInput(IE_NOT_SQUARE_SYSTEM.format(y.shape[0], x.shape[0]))
            estimate = self.initialization.initialize(jacobian_fn, x)
            self._check_finite(estimate, "estimate", i)
            while True:
                norm = float(np.linalg.norm(y))
                logger.debug("%s iteration %d: residual norm %.6e", algo, i, norm)
                if norm < self.func_tol:
                    self.result = _solver_result(2, i, norm, time() - t0, self.log, algo)
                    return x
                if i >= self.max_iter:
                    self.result = _solver_result(-1, i, norm, time() - t0, self.log, algo)
                    raise ConvergenceFailure(
                        CF_MAX_ITER.format(self.max_iter, algo, self.func_tol, norm),
                        residual_norm=norm,
                        iterations=i,
                    )

                direction = self.direction.get_direction(estimate, y)
                self._check_finite(direction, "direction", i)
                x_new = x - direction
                y_new = self._evaluate(f, x_new, i)
                estimate = self.update.get_updated_estimate(
                    jacobian_fn, x_new, x_new - x, y_new - y, estimate
                )
                self._check_finite(estimate, "estimate", i)
                x, y = x_new, y_new
                i += 1
        except NumericalOverflow:
            self.result = _solver_result(-2, i, None, time() - t0, self.log, algo)
            raise
        except SingularMatrix:
            self.result = _solver_result(-3, i, None, time() - t0, self.log, algo)
            raise
        except InvalidInput:
            self.result = _solver_result(-4, i, None, time() - t0, self.log, algo)
            raise

    def _evaluate(self, f: Callable[[Arr1dF64], Any], x: Arr1dF64, i: int) -> Arr1dF64:
        self._check_finite(x, "x", i)
        y = np.asarray(f(x), dtype=np.float64)
        self._check_finite(y, "y", i)
        return y

    @staticmethod
    def _check_finite(value: Any, name: str, i: int) -> None:
        if not _all_finite(value):
            raise NumericalOverflow(NO_NOT_FINITE.format(name, i))
