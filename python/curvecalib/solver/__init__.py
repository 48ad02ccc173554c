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

from __future__ import annotations  # type hinting

from curvecalib.solver.decomposition import (
    DecompositionCholesky,
    DecompositionLU,
    DecompositionQR,
    DecompositionResult,
    DecompositionSVD,
    get_decomposition,
)
from curvecalib.solver.jacobian import finite_difference_jacobian
from curvecalib.solver.newton import VectorRootFinder, newton_1dim
from curvecalib.solver.strategies import (
    BroydenUpdate,
    DirectSolveDirection,
    InverseJacobianDirection,
    InverseJacobianInitialization,
    InverseJacobianRecompute,
    JacobianInitialization,
    JacobianRecompute,
    ShermanMorrisonUpdate,
)

__all__ = [
    "DecompositionLU",
    "DecompositionQR",
    "DecompositionSVD",
    "DecompositionCholesky",
    "DecompositionResult",
    "get_decomposition",
    "DirectSolveDirection",
    "InverseJacobianDirection",
    "JacobianRecompute",
    "BroydenUpdate",
    "InverseJacobianRecompute",
    "ShermanMorrisonUpdate",
    "JacobianInitialization",
    "InverseJacobianInitialization",
    "VectorRootFinder",
    "finite_difference_jacobian",
    "newton_1dim",
]
