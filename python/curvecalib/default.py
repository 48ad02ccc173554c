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

from copy import deepcopy
from enum import Enum
from typing import Any

import matplotlib.pyplot as plt

PlotOutput = tuple[plt.Figure, plt.Axes, list[plt.Line2D]]  # type: ignore[name-defined]


class NoInput(Enum):
    """
    Enumerable type to handle setting default values.

    An argument left as *NoInput* is populated from the :class:`Defaults` object at the time
    the receiving object is initialised.
    """

    blank = 0


def _drb(default: Any, possible_ni: Any | NoInput) -> Any:
    """(D)efault (r)eplaces (b)lank"""
    return default if isinstance(possible_ni, NoInput) else possible_ni


DEFAULTS = dict(
    # Curves
    interpolation={
        "dfs": "log_linear",
        "zero_rates": "linear",
        "values": "linear",
    },
    # Root finding
    root_finder="newton",
    decomposition="lu",
    func_tol=1e-12,
    max_iter=50,
    singular_tol=1e-13,
    broyden_min_step=1e-30,
    fd_method="central",
    fd_shift=NoInput(0),
    log_solver=False,
    # Calibration
    calibration_mode="successive",
)


class Defaults:
    """
    The *defaults* object used by initialising objects. Values are printed below:

    .. ipython:: python

       from curvecalib import defaults
       print(defaults.print())

    """

    _instance = None

    interpolation: dict[str, str]

    root_finder: str
    decomposition: str
    func_tol: float
    max_iter: int
    singular_tol: float
    broyden_min_step: float
    fd_method: str
    fd_shift: float | NoInput
    log_solver: bool

    calibration_mode: str

    def __new__(cls) -> Defaults:
        if cls._instance is None:
            # Singleton pattern creates only one instance: TODO (low) might not be thread safe
            cls._instance = super(Defaults, cls).__new__(cls)  # noqa: UP008

            for k, v in DEFAULTS.items():
                setattr(cls._instance, k, deepcopy(v))

        return cls._instance

    def reset_defaults(self) -> None:
        """
        Revert defaults back to their initialisation status.

        Examples
        --------
        .. ipython:: python

           from curvecalib import defaults
           defaults.reset_defaults()
        """
        attrs = [
            v
            for v in dir(self)
            if "__" not in v and not callable(getattr(self, v)) and v != "_instance"
        ]
        for attr in attrs:
            delattr(self, attr)

        for k, v in DEFAULTS.items():
            setattr(self, k, deepcopy(v))

    def print(self) -> str:
        """
        Return a string representation of the current values in the defaults object.
        """

        def _t_n(v: str) -> str:  # teb-newline
            return f"\t{v}\n"

        def _section(attributes: list[str]) -> str:
            return "".join([_t_n(f"{a}: {getattr(self, a)}") for a in attributes])

        _: str = (
            "Curves:\n\n"
            + _section(["interpolation"])
            + "\nRoot finding:\n\n"
            + _section(
                [
                    "root_finder",
                    "decomposition",
                    "func_tol",
                    "max_iter",
                    "singular_tol",
                    "broyden_min_step",
                    "fd_method",
                    "fd_shift",
                    "log_solver",
                ]
            )
            + "\nCalibration:\n\n"
            + _section(["calibration_mode"])
        )
        return _


def plot(
    x: list[list[Any]], y: list[list[Any]], labels: list[str] | NoInput = NoInput(0)
) -> PlotOutput:
    labels = _drb([], labels)
    fig, ax = plt.subplots(1, 1)
    lines = []
    for _x, _y in zip(x, y, strict=True):
        (line,) = ax.plot(_x, _y)
        lines.append(line)
    if not isinstance(labels, NoInput) and len(labels) == len(lines):
        ax.legend(lines, labels)

    ax.grid(True)
    return fig, ax, lines


__all__ = ["Defaults", "NoInput", "plot"]
