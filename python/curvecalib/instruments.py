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
Reference calibrating instruments.

Any object with a method `rate(bundle) -> float` may be used to calibrate curves. The
instruments below are the minimal set needed to build discounting and projection curves
from money market and swap quotes. Rates are returned in percent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from math import ceil

from curvecalib.curves import CurveBundle
from curvecalib.default import NoInput, _drb
from curvecalib.errors import InvalidInput

Curves_ = str | Sequence[str]


def _parse_curves(curves: Curves_) -> tuple[str, str]:
    """Return the (forecasting, discounting) keys from a key or a pair of keys."""
    if isinstance(curves, str):
        return curves, curves
    curves_ = list(curves)
    if len(curves_) == 1:
        return curves_[0], curves_[0]
    elif len(curves_) == 2:
        return curves_[0], curves_[1]
    raise InvalidInput("`curves` must be a bundle key or a (forecasting, discounting) pair.")


def _validate_period(start: float, end: float) -> tuple[float, float]:
    if not start < end:
        raise InvalidInput(f"`start` must be before `end`, got ({start}, {end}).")
    return float(start), float(end)


class _BaseInstrument(ABC):
    curves: tuple[str, str]

    @abstractmethod
    def rate(self, bundle: CurveBundle) -> float:
        """Return the instrument's mid-market rate, in percent, priced from ``bundle``."""
        pass  # pragma: no cover

    def __repr__(self) -> str:
        return f"<cc.{type(self).__name__} at {hex(id(self))}>"


class Deposit(_BaseInstrument):
    """
    A simple interest deposit between two times, priced from the discounting curve.

    .. math::

       1 + r (t_e - t_s) = \\frac{v(t_s)}{v(t_e)}

    Parameters
    ----------
    start : float
        The start of the deposit as a year fraction.
    end : float
        The maturity of the deposit as a year fraction.
    curves : str or sequence of str
        The bundle key of the curve, or a (forecasting, discounting) pair of keys.
    """

    def __init__(self, start: float, end: float, curves: Curves_) -> None:
        self.start, self.end = _validate_period(start, end)
        self.curves = _parse_curves(curves)

    def rate(self, bundle: CurveBundle) -> float:
        return bundle.get_discount_curve(self.curves[1]).rate(self.start, self.end)


class FRA(_BaseInstrument):
    """
    A forward rate agreement, priced as the rate of the forecasting curve over its period.

    If the forecasting curve is a :class:`~curvecalib.curves.LineCurve` its value at
    ``start`` is returned.

    Parameters
    ----------
    start : float
        The start of the forward period as a year fraction.
    end : float
        The end of the forward period as a year fraction.
    curves : str or sequence of str
        The bundle key of the curve, or a (forecasting, discounting) pair of keys.
    """

    def __init__(self, start: float, end: float, curves: Curves_) -> None:
        self.start, self.end = _validate_period(start, end)
        self.curves = _parse_curves(curves)

    def rate(self, bundle: CurveBundle) -> float:
        return bundle.get_curve(self.curves[0]).rate(self.start, self.end)


class IRS(_BaseInstrument):
    """
    A fixed for floating interest rate swap, priced at its par fixed rate.

    Both legs share a regular schedule of ``frequency`` periods per year rolled forward from
    ``start``, with a short final stub if required. The floating leg projects each period's
    rate from the forecasting curve and both legs are discounted on the discounting curve.

    .. math::

       S = \\frac{\\sum_k F_k \\tau_k v(t_k)}{\\sum_k \\tau_k v(t_k)}

    Parameters
    ----------
    start : float
        The effective time of the swap.
    end : float
        The termination time of the swap.
    frequency : int, optional
        The number of periods per year. Defaults to 1.
    curves : str or sequence of str
        The bundle key of the curve, or a (forecasting, discounting) pair of keys.

    Examples
    --------
    .. ipython:: python

       from curvecalib.curves import Curve, CurveBundle
       from curvecalib.instruments import IRS

       bundle = CurveBundle({"usd": Curve({0.0: 1.0, 5.0: 0.90})})
       IRS(0.0, 5.0, 2, curves="usd").rate(bundle)
    """

    def __init__(
        self,
        start: float,
        end: float,
        frequency: int | NoInput = NoInput(0),
        curves: Curves_ | NoInput = NoInput(0),
    ) -> None:
        self.start, self.end = _validate_period(start, end)
        self.frequency = _drb(1, frequency)
        if self.frequency <= 0:
            raise InvalidInput(f"`frequency` must be positive, got {self.frequency}.")
        if isinstance(curves, NoInput):
            raise InvalidInput("`curves` must be given for an IRS.")
        self.curves = _parse_curves(curves)
        self.schedule = self._generate_schedule()

    def _generate_schedule(self) -> list[float]:
        # tolerance avoids a spurious stub from floating point year fractions
        n = ceil((self.end - self.start) * self.frequency - 1e-9)
        schedule = [self.start + k / self.frequency for k in range(n)]
        return schedule + [self.end]

    def annuity(self, bundle: CurveBundle) -> float:
        """Return the fixed leg annuity, :math:`\\sum_k \\tau_k v(t_k)`."""
        disc_curve = bundle.get_discount_curve(self.curves[1])
        return sum(
            (t2 - t1) * disc_curve.df(t2)
            for t1, t2 in zip(self.schedule[:-1], self.schedule[1:], strict=True)
        )

    def rate(self, bundle: CurveBundle) -> float:
        fore_curve = bundle.get_curve(self.curves[0])
        disc_curve = bundle.get_discount_curve(self.curves[1])
        float_pv = sum(
            fore_curve.rate(t1, t2) * (t2 - t1) * disc_curve.df(t2)
            for t1, t2 in zip(self.schedule[:-1], self.schedule[1:], strict=True)
        )
        return float_pv / self.annuity(bundle)


class Value(_BaseInstrument):
    """
    A null instrument which directly parametrises a curve via some calculated value.

    Parameters
    ----------
    t : float
        The abscissa at which the value is returned.
    curves : str or sequence of str
        The bundle key of the curve. Only the forecasting key of a pair is used.
    metric : str in {"curve_value", "df", "cc_zero_rate"}, optional
        Configures which value to extract from the curve. Defaults to *"curve_value"*, the
        native node quantity of the curve.
    """

    _metrics = ("curve_value", "df", "cc_zero_rate")

    def __init__(
        self,
        t: float,
        curves: Curves_,
        metric: str | NoInput = NoInput(0),
    ) -> None:
        self.t = float(t)
        self.curves = _parse_curves(curves)
        self.metric = _drb("curve_value", metric).lower()
        if self.metric not in self._metrics:
            raise InvalidInput(f"`metric`: '{self.metric}' must be in {list(self._metrics)}.")

    def rate(self, bundle: CurveBundle) -> float:
        if self.metric == "curve_value":
            return bundle.get_curve(self.curves[0])[self.t]
        elif self.metric == "df":
            return bundle.get_discount_curve(self.curves[0]).df(self.t)
        else:
            return bundle.get_discount_curve(self.curves[0]).zero_rate(self.t)
