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

import logging
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

STATE_MAP = {
    1: ["SUCCESS", "`conv_tol` reached"],
    2: ["SUCCESS", "`func_tol` reached"],
    3: ["SUCCESS", "closed form valid"],
    -1: ["FAILURE", "`max_iter` breached"],
    -2: ["FAILURE", "non-finite value encountered"],
    -3: ["FAILURE", "singular matrix encountered"],
    -4: ["FAILURE", "invalid input encountered"],
}


def _solver_result(
    state: int, i: int, func_val: Any, time: float, log: bool, algo: str
) -> dict[str, Any]:
    if log:
        level = logging.INFO if state > 0 else logging.WARNING
        logger.log(
            level,
            "%s: %s after %d iterations (%s), `f_val`: %s, `time`: %.4fs",
            STATE_MAP[state][0],
            STATE_MAP[state][1],
            i,
            algo,
            func_val,
            time,
        )
    return {
        "status": STATE_MAP[state][0],
        "state": state,
        "g": func_val,
        "iterations": i,
        "time": time,
    }


def _all_finite(arr: Any) -> bool:
    return bool(np.all(np.isfinite(arr)))
