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

import warnings
from abc import ABC, abstractmethod
from typing import Any

import numpy as np
from scipy.linalg import (
    LinAlgError,
    LinAlgWarning,
    cho_factor,
    cho_solve,
    lu_factor,
    lu_solve,
    qr,
    solve_triangular,
    svd,
)

from curvecalib import defaults
from curvecalib.default import NoInput, _drb
from curvecalib.errors import (
    IE_NOT_FINITE_MATRIX,
    IE_NOT_SQUARE,
    IE_RHS_SHAPE,
    IE_UNKNOWN_DECOMPOSITION,
    NPD_NOT_POSITIVE,
    NPD_NOT_SYMMETRIC,
    SM_PIVOT,
    InvalidInput,
    NotPositiveDefinite,
    SingularMatrix,
)

Arr1dF64 = np.ndarray[tuple[int], np.dtype[np.float64]]
Arr2dF64 = np.ndarray[tuple[int, int], np.dtype[np.float64]]


def _validate_matrix(A: Any) -> Arr2dF64:
    A = np.asarray(A, dtype=np.float64)
    if A.ndim != 2 or A.shape[0] != A.shape[1] or A.shape[0] == 0:
        raise InvalidInput(IE_NOT_SQUARE.format(A.shape))
    if not np.all(np.isfinite(A)):
        raise InvalidInput(IE_NOT_FINITE_MATRIX)
    return A


def _check_pivots(pivots: Arr1dF64, tol: float, name: str) -> None:
    """Raise if the smallest absolute pivot is negligible relative to the largest."""
    pivots = np.abs(pivots)
    largest = pivots.max()
    ratio = 0.0 if largest == 0.0 else pivots.min() / largest
    if ratio <= tol:
        raise SingularMatrix(SM_PIVOT.format(ratio, tol, name))


class DecompositionResult(ABC):
    """
    The factorised form of a square matrix, :math:`A`, able to solve :math:`Ax=b`.

    Instances are returned by the ``decompose`` method of a decomposition strategy and should
    not be constructed directly.
    """

    n: int

    def solve(self, b: Any) -> np.ndarray[tuple[int, ...], np.dtype[np.float64]]:
        """
        Solve the linear system :math:`Ax=b`.

        Parameters
        ----------
        b: array_like
            A vector of length *n* or a matrix with *n* rows.

        Returns
        -------
        ndarray of the same shape as ``b``.
        """
        b = np.asarray(b, dtype=np.float64)
        if b.ndim not in (1, 2) or b.shape[0] != self.n:
            raise InvalidInput(IE_RHS_SHAPE.format(b.shape, self.n))
        if not np.all(np.isfinite(b)):
            raise InvalidInput(IE_NOT_FINITE_MATRIX)
        return self._solve(b)

    def inverse(self) -> Arr2dF64:
        """Return the explicit inverse of the decomposed matrix by solving against the identity."""
        return self._solve(np.eye(self.n))

    @abstractmethod
    def _solve(self, b: Any) -> Any:
        pass  # pragma: no cover


class _LUResult(DecompositionResult):
    def __init__(self, lu: Arr2dF64, piv: Any) -> None:
        self.lu, self.piv, self.n = lu, piv, lu.shape[0]

    def _solve(self, b: Any) -> Any:
        return lu_solve((self.lu, self.piv), b, check_finite=False)


class _QRResult(DecompositionResult):
    def __init__(self, q: Arr2dF64, r: Arr2dF64) -> None:
        self.q, self.r, self.n = q, r, r.shape[0]

    def _solve(self, b: Any) -> Any:
        return solve_triangular(self.r, np.matmul(self.q.T, b), check_finite=False)


class _SVDResult(DecompositionResult):
    def __init__(self, u: Arr2dF64, s: Arr1dF64, vh: Arr2dF64) -> None:
        self.u, self.s, self.vh, self.n = u, s, vh, s.shape[0]

    def _solve(self, b: Any) -> Any:
        _ = np.matmul(self.u.T, b)
        _ = _ / (self.s if _.ndim == 1 else self.s[:, None])
        return np.matmul(self.vh.T, _)


class _CholeskyResult(DecompositionResult):
    def __init__(self, c: Arr2dF64, lower: bool) -> None:
        self.c, self.lower, self.n = c, lower, c.shape[0]

    def _solve(self, b: Any) -> Any:
        return cho_solve((self.c, self.lower), b, check_finite=False)


class _BaseDecomposition(ABC):
    """
    Abstract base class for a strategy which factorises a dense square matrix.

    Parameters
    ----------
    singular_tol: float, optional
        The relative pivot size below which the matrix is deemed singular. Defaults to
        ``defaults.singular_tol``.
    """

    name: str

    def __init__(self, singular_tol: float | NoInput = NoInput(0)) -> None:
        self.singular_tol = _drb(defaults.singular_tol, singular_tol)

    def decompose(self, A: Any) -> DecompositionResult:
        """
        Factorise the matrix ``A``.

        Parameters
        ----------
        A: array_like
            A real, square matrix of finite values.

        Returns
        -------
        DecompositionResult

        Raises
        ------
        InvalidInput
            If ``A`` is not square or contains NaN or infinite entries.
        SingularMatrix
            If ``A`` is not invertible to working precision.
        """
        return self._decompose(_validate_matrix(A))

    @abstractmethod
    def _decompose(self, A: Arr2dF64) -> DecompositionResult:
        pass  # pragma: no cover

    def __repr__(self) -> str:
        return f"<cc.{type(self).__name__} at {hex(id(self))}>"


class DecompositionLU(_BaseDecomposition):
    """LU decomposition with partial pivoting. Singularity is measured on the diagonal of *U*."""

    name = "lu"

    def _decompose(self, A: Arr2dF64) -> DecompositionResult:
        with warnings.catch_warnings():
            # exactly singular matrices emit a warning before the pivot check raises.
            warnings.simplefilter("ignore", LinAlgWarning)
            lu, piv = lu_factor(A, check_finite=False)
        _check_pivots(np.diag(lu), self.singular_tol, self.name)
        return _LUResult(lu, piv)


class DecompositionQR(_BaseDecomposition):
    """QR decomposition. Singularity is measured on the diagonal of *R*."""

    name = "qr"

    def _decompose(self, A: Arr2dF64) -> DecompositionResult:
        q, r = qr(A, check_finite=False)
        _check_pivots(np.diag(r), self.singular_tol, self.name)
        return _QRResult(q, r)


class DecompositionSVD(_BaseDecomposition):
    """
    Singular value decomposition.

    Singularity is measured as the ratio of the smallest to the largest singular value, i.e.
    the reciprocal of the 2-norm condition number.
    """

    name = "svd"

    def _decompose(self, A: Arr2dF64) -> DecompositionResult:
        u, s, vh = svd(A, check_finite=False)
        _check_pivots(s, self.singular_tol, self.name)
        return _SVDResult(u, s, vh)


class DecompositionCholesky(_BaseDecomposition):
    """
    Cholesky decomposition of a symmetric positive definite matrix.

    Raises :class:`~curvecalib.errors.NotPositiveDefinite` if the matrix is not symmetric or
    the factorisation fails.
    """

    name = "cholesky"

    def _decompose(self, A: Arr2dF64) -> DecompositionResult:
        if not np.allclose(A, A.T, rtol=1e-12, atol=0.0):
            raise NotPositiveDefinite(NPD_NOT_SYMMETRIC)
        try:
            c, lower = cho_factor(A, lower=True, check_finite=False)
        except LinAlgError as e:
            raise NotPositiveDefinite(NPD_NOT_POSITIVE.format(e)) from e
        _check_pivots(np.diag(c) ** 2, self.singular_tol, self.name)
        return _CholeskyResult(c, lower)


DECOMPOSITIONS: dict[str, type[_BaseDecomposition]] = {
    "lu": DecompositionLU,
    "qr": DecompositionQR,
    "svd": DecompositionSVD,
    "cholesky": DecompositionCholesky,
}


def get_decomposition(
    decomposition: str | _BaseDecomposition | NoInput = NoInput(0),
) -> _BaseDecomposition:
    """
    Return a decomposition strategy from a name or pass an instance through.

    Parameters
    ----------
    decomposition: str or decomposition, optional
        One of *{"lu", "qr", "svd", "cholesky"}*. Defaults to ``defaults.decomposition``.

    Returns
    -------
    DecompositionLU, DecompositionQR, DecompositionSVD or DecompositionCholesky
    """
    decomposition = _drb(defaults.decomposition, decomposition)
    if isinstance(decomposition, _BaseDecomposition):
        return decomposition
    try:
        return DECOMPOSITIONS[decomposition.lower()]()
    except KeyError:
        raise InvalidInput(
            IE_UNKNOWN_DECOMPOSITION.format(decomposition, list(DECOMPOSITIONS))
        ) from None
