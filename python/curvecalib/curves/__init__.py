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

from curvecalib.curves.bundle import CurveBundle
from curvecalib.curves.curves import (
    Curve,
    LineCurve,
    SpreadZeroCurve,
    ZeroCurve,
    _BaseCurve,
    _CurveNodes,
    _CurveType,
    _DiscountCurve,
)
from curvecalib.curves.generators import (
    ConstantZeroRateGenerator,
    CurveGenerator,
    InterpolatedDFGenerator,
    InterpolatedLineGenerator,
    InterpolatedZeroRateGenerator,
    SpreadZeroRateGenerator,
)
from curvecalib.curves.interpolation import INTERPOLATION, index_left

__all__ = (
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
    "INTERPOLATION",
    "index_left",
    "_BaseCurve",
    "_CurveNodes",
    "_CurveType",
    "_DiscountCurve",
)
