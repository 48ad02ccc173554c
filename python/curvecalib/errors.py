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


class CalibrationError(Exception):
    """Base class for all errors raised by the calibration core."""


class InvalidInput(CalibrationError, ValueError):
    """
    Inputs are malformed: mismatched vector lengths, unsorted node abscissas, an empty
    instrument list or a non-square system.
    """


class NotPositiveDefinite(InvalidInput):
    """A Cholesky decomposition was requested of a matrix that is not symmetric positive
    definite."""


class SingularMatrix(CalibrationError, ArithmeticError):
    """A decomposition has detected a non-invertible or ill-conditioned matrix."""


class NumericalOverflow(CalibrationError, ArithmeticError):
    """A NaN or infinite value was produced during a calculation."""


class ConvergenceFailure(CalibrationError, ArithmeticError):
    """
    An iterative routine exhausted its iteration budget without reaching tolerance.

    Parameters
    ----------
    message: str
        The error message.
    residual_norm: float
        The norm of the last evaluated residual vector.
    iterations: int
        The number of iterations performed.
    """

    def __init__(self, message: str, residual_norm: float, iterations: int) -> None:
        super().__init__(message)
        self.residual_norm = residual_norm
        self.iterations = iterations


# Linear algebra

IE_NOT_SQUARE = "Matrix must be 2d and square, got shape: {0}."

IE_NOT_FINITE_MATRIX = "Matrix contains NaN or infinite entries."

IE_RHS_SHAPE = "Right hand side of shape {0} is not compatible with a system of size {1}."

SM_PIVOT = (
    "Matrix is singular to working precision: smallest relative pivot {0:.3e} is below "
    "the threshold {1:.3e} ({2} decomposition)."
)

NPD_NOT_SYMMETRIC = "Cholesky decomposition requires a symmetric matrix."

NPD_NOT_POSITIVE = "Cholesky decomposition requires a positive definite matrix: {0}"

IE_UNKNOWN_DECOMPOSITION = "`decomposition`: '{0}' is not recognised. Use one of {1}."

# Root finding

IE_NOT_SQUARE_SYSTEM = (
    "The root finder requires a square system: got {0} residuals for {1} parameters."
)

IE_JACOBIAN_SHAPE = "The Jacobian has shape {0} but ({1}, {1}) was expected."

NO_NOT_FINITE = "Non-finite value encountered in `{0}` at iteration {1}."

NO_JACOBIAN_NOT_FINITE = "Non-finite value encountered in the Jacobian: {0}"

NO_ZERO_DERIVATIVE = "Zero derivative encountered in `{0}` at iteration {1}."

CF_MAX_ITER = (
    "`max_iter`: {0} exceeded in '{1}' algorithm without reaching `func_tol`: {2}. "
    "Last residual norm: {3:.6e}."
)

IE_UNKNOWN_ROOT_FINDER = "`method`: '{0}' is not recognised. Use one of {1}."

IE_INCONSISTENT_STRATEGIES = (
    "The `direction` strategy expects the {0} as its estimate but the `{1}` strategy "
    "produces the {2}."
)

# Curves

IE_EMPTY_NODES = "A curve generator requires at least one node."

IE_NODES_NOT_INCREASING = "Node abscissas must be finite and strictly increasing, got: {0}."

IE_NODES_NEGATIVE = "Node abscissas must be non-negative, got: {0}."

IE_PARAMETER_LENGTH = "`parameters` of length {0} given for a generator requiring {1}."

IE_SPREAD_NO_BUNDLE = (
    "A bundle holding the base curve under key '{0}' is required to generate a spread curve."
)

IE_UNKNOWN_INTERPOLATION = "`interpolation`: '{0}' is not recognised. Use one of {1}."

IE_BUNDLE_FROZEN = "The CurveBundle is frozen and cannot be modified. Use `copy` first."

IE_KEY_NOT_IN_BUNDLE = "No curve is stored under the key: '{0}'."

IE_CURVE_NOT_DF = "The curve under key '{0}' of type {1} cannot return discount factors."

# Calibration

IE_NO_INSTRUMENTS = "At least one calibrating instrument is required."

IE_QUOTES_LENGTH = "`s` must be same length as `instruments`, got {0} and {1}."

IE_LABELS_LENGTH = "`instrument_labels` must have length `instruments`."

IE_GUESS_LENGTH = "`initial_guess` of length {0} does not match the {1} group parameters."

IE_NO_GROUPS = "At least one CalibrationGroup is required."

IE_NO_CURVES = "A CalibrationGroup requires at least one curve to calibrate."

IE_NON_SQUARE_GROUP = (
    "CalibrationGroup {0} is not square: {1} instruments for {2} curve parameters."
)

IE_NON_SQUARE_SYSTEM = (
    "The simultaneous system is not square: {0} instruments for {1} curve parameters."
)

IE_NOT_A_GROUP = "`groups` must contain CalibrationGroup objects, got {0}."

IE_CURVE_TRIPLET = "`curves` must contain (key, id, generator) triplets, got: {0}."

IE_DUPLICATE_KEY = "`curves` must each have their own unique {0}, got duplicate: '{1}'."

IE_UNKNOWN_MODE = "`mode`: '{0}' is not recognised. Use 'successive' or 'simultaneous'."

IE_NOT_CALIBRATED = "The engine has not yet completed a calibration."
