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

from collections.abc import Callable, Sequence
from typing import Any

import numpy as np

from curvecalib.curves import CurveBundle
from curvecalib.errors import IE_NO_INSTRUMENTS, IE_QUOTES_LENGTH, InvalidInput
from curvecalib.solver import finite_difference_jacobian

Arr1dF64 = np.ndarray[tuple[int], np.dtype[np.float64]]


class CalibrationObjective:
    """
    The residual function of a calibration, :math:`F(x) = r(x) - s`.

    Parameters
    ----------
    instruments : sequence
        Calibrating instruments, each implementing `rate(bundle) -> float`.
    s : sequence of float
        The quoted market rates, in the same order as ``instruments``.
    assemble_bundle : callable
        A function `assemble_bundle(x) -> CurveBundle` which generates every curve being
        calibrated from the parameter vector and combines them with any fixed curves.

    Notes
    -----
    Each evaluation assembles a fresh bundle. Nothing is cached between calls so the
    objective may be evaluated at arbitrary points by a finite difference routine.
    """

    def __init__(
        self,
        instruments: Sequence[Any],
        s: Sequence[float],
        assemble_bundle: Callable[[Arr1dF64], CurveBundle],
    ) -> None:
        self.instruments = tuple(instruments)
        self.m = len(self.instruments)
        if self.m == 0:
            raise InvalidInput(IE_NO_INSTRUMENTS)
        self.s = np.asarray(s, dtype=np.float64).ravel()
        if self.s.shape[0] != self.m:
            raise InvalidInput(IE_QUOTES_LENGTH.format(self.s.shape[0], self.m))
        self.assemble_bundle = assemble_bundle

    def __call__(self, x: Any) -> Arr1dF64:
        bundle = self.assemble_bundle(np.asarray(x, dtype=np.float64))
        r = np.array([instrument.rate(bundle) for instrument in self.instruments], dtype=np.float64)
        return r - self.s

    def jacobian(self, x: Any) -> np.ndarray[tuple[int, int], np.dtype[np.float64]]:
        """
        Return the finite difference Jacobian, :math:`J_{ij} = \\partial F_i / \\partial x_j`.
        """
        return finite_difference_jacobian(self, x)

    def __repr__(self) -> str:
        return f"<cc.CalibrationObjective at {hex(id(self))}>"
