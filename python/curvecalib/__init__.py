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

__docformat__ = "restructuredtext"

# Let users know if they're missing any of our hard dependencies
_hard_dependencies = ("pandas", "matplotlib", "numpy", "scipy")

for _dependency in _hard_dependencies:
    try:
        __import__(_dependency)
    except ImportError as _e:  # pragma: no cover
        raise ImportError(f"`curvecalib` requires installation of {_dependency}: {_e}")

from contextlib import ContextDecorator

from curvecalib.default import Defaults, NoInput

defaults = Defaults()


class default_context(ContextDecorator):
    """
    Context manager to temporarily set options in the `with` statement context.

    You need to invoke as ``default_context(pat, val, [(pat, val), ...])``.

    Examples
    --------
    >>> with default_context("max_iter", 10, "decomposition", "qr"):
    ...     pass
    """

    def __init__(self, *args) -> None:  # type: ignore[no-untyped-def]
        if len(args) % 2 != 0 or len(args) < 2:
            raise ValueError("Need to invoke as default_context(pat, val, [(pat, val), ...]).")

        self.ops = list(zip(args[::2], args[1::2]))

    def __enter__(self) -> None:
        self.undo = [(pat, getattr(defaults, pat, None)) for pat, _ in self.ops]

        for pat, val in self.ops:
            setattr(defaults, pat, val)

    def __exit__(self, *args) -> None:  # type: ignore[no-untyped-def]
        if self.undo:
            for pat, val in self.undo:
                setattr(defaults, pat, val)


from curvecalib.calibration import (  # noqa: E402
    CalibrationEngine,
    CalibrationGroup,
    CalibrationObjective,
    CurveBuildingBlock,
)
from curvecalib.curves import (  # noqa: E402
    INTERPOLATION,
    ConstantZeroRateGenerator,
    Curve,
    CurveBundle,
    CurveGenerator,
    InterpolatedDFGenerator,
    InterpolatedLineGenerator,
    InterpolatedZeroRateGenerator,
    LineCurve,
    SpreadZeroCurve,
    SpreadZeroRateGenerator,
    ZeroCurve,
)
from curvecalib.errors import (  # noqa: E402
    CalibrationError,
    ConvergenceFailure,
    InvalidInput,
    NotPositiveDefinite,
    NumericalOverflow,
    SingularMatrix,
)
from curvecalib.instruments import FRA, IRS, Deposit, Value  # noqa: E402
from curvecalib.solver import (  # noqa: E402
    BroydenUpdate,
    DecompositionCholesky,
    DecompositionLU,
    DecompositionQR,
    DecompositionSVD,
    DirectSolveDirection,
    InverseJacobianDirection,
    InverseJacobianInitialization,
    InverseJacobianRecompute,
    JacobianInitialization,
    JacobianRecompute,
    ShermanMorrisonUpdate,
    VectorRootFinder,
    finite_difference_jacobian,
    get_decomposition,
    newton_1dim,
)

__all__ = [
    "defaults",
    "default_context",
    "NoInput",
    # errors
    "CalibrationError",
    "ConvergenceFailure",
    "InvalidInput",
    "NotPositiveDefinite",
    "NumericalOverflow",
    "SingularMatrix",
    # solver
    "DecompositionLU",
    "DecompositionQR",
    "DecompositionSVD",
    "DecompositionCholesky",
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
    # curves
    "INTERPOLATION",
    "Curve",
    "ZeroCurve",
    "LineCurve",
    "SpreadZeroCurve",
    "CurveBundle",
    "CurveGenerator",
    "InterpolatedDFGenerator",
    "InterpolatedZeroRateGenerator",
    "InterpolatedLineGenerator",
    "ConstantZeroRateGenerator",
    "SpreadZeroRateGenerator",
    # calibration
    "CalibrationObjective",
    "CalibrationGroup",
    "CalibrationEngine",
    "CurveBuildingBlock",
    # instruments
    "Deposit",
    "FRA",
    "IRS",
    "Value",
]

__version__ = "0.1.0"
