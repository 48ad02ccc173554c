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
Curve generators map a sub-vector of the calibration parameters to an immutable curve.

A generator holds only configuration, the node abscissas and the interpolation, which is
validated once at construction. It is stateless thereafter so the same generator may produce
any number of curves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from curvecalib import defaults
from curvecalib.curves.curves import (
    Curve,
    LineCurve,
    SpreadZeroCurve,
    ZeroCurve,
    _BaseCurve,
    _get_interpolation,
)
from curvecalib.default import NoInput, _drb
from curvecalib.errors import (
    IE_EMPTY_NODES,
    IE_NODES_NEGATIVE,
    IE_NODES_NOT_INCREASING,
    IE_PARAMETER_LENGTH,
    IE_SPREAD_NO_BUNDLE,
    InvalidInput,
)

if TYPE_CHECKING:
    from curvecalib.curves.bundle import CurveBundle

Arr1dF64 = np.ndarray[tuple[int], np.dtype[np.float64]]


class CurveGenerator(ABC):
    """
    Abstract base class for mapping a parameter vector to a curve.

    Parameters
    ----------
    nodes : sequence of float
        Strictly increasing, finite and non-negative node abscissas as year fractions.
    interpolation : str, optional
        The name of the interpolation function given to generated curves.
    """

    _curve_type: type[_BaseCurve]
    _initial_value: float = 1.0

    def __init__(
        self,
        nodes: Sequence[float],
        interpolation: str | NoInput = NoInput(0),
    ) -> None:
        nodes_ = np.array(nodes, dtype=np.float64).ravel()
        if nodes_.shape[0] == 0:
            raise InvalidInput(IE_EMPTY_NODES)
        if not np.all(np.isfinite(nodes_)) or np.any(np.diff(nodes_) <= 0.0):
            raise InvalidInput(IE_NODES_NOT_INCREASING.format(list(nodes_)))
        if nodes_[0] < 0.0:
            raise InvalidInput(IE_NODES_NEGATIVE.format(list(nodes_)))
        self._nodes: tuple[float, ...] = tuple(float(_) for _ in nodes_)

        interpolation_ = _drb(
            defaults.interpolation[self._curve_type._interpolation_default], interpolation
        )
        self._interpolation, _ = _get_interpolation(interpolation_, self._curve_type._node_type)

    @property
    def nodes(self) -> tuple[float, ...]:
        """The node abscissas at which parameters are placed."""
        return self._nodes

    @property
    def interpolation(self) -> str:
        """The interpolation name given to generated curves."""
        return self._interpolation

    @property
    def n(self) -> int:
        """The number of parameters consumed by this generator."""
        return len(self._nodes)

    def number_of_parameters(self) -> int:
        return self.n

    def generate_curve(
        self,
        id: str,  # noqa: A002
        parameters: Any,
        bundle: CurveBundle | None = None,
    ) -> _BaseCurve:
        """
        Construct a curve from a parameter sub-vector.

        Parameters
        ----------
        id : str
            The identifier of the generated curve.
        parameters : array_like
            A vector of length ``n``.
        bundle : CurveBundle, optional
            The curves already available when this curve is generated. Only used by
            generators which are defined relative to another curve.

        Returns
        -------
        Curve, ZeroCurve, LineCurve or SpreadZeroCurve

        Raises
        ------
        InvalidInput
            If ``parameters`` does not have length ``n``.
        """
        parameters_ = self._validate_parameters(parameters)
        return self._generate(id, parameters_, bundle)

    @abstractmethod
    def _generate(
        self,
        id: str,  # noqa: A002
        parameters: Arr1dF64,
        bundle: CurveBundle | None,
    ) -> _BaseCurve:
        pass  # pragma: no cover

    def get_parameters(self, curve: _BaseCurve) -> Arr1dF64:
        """
        Return the parameter vector which regenerates an equivalent curve.

        The curve is evaluated at this generator's nodes so a curve with a different node
        set, of the same type, is projected onto this generator's parametrisation.

        Parameters
        ----------
        curve : Curve, ZeroCurve or LineCurve
            A curve of the type produced by this generator.

        Returns
        -------
        ndarray
        """
        if type(curve) is not self._curve_type:
            raise InvalidInput(
                f"{type(self).__name__} cannot derive parameters from a curve of type "
                f"{type(curve).__name__}."
            )
        return np.array([curve[t] for t in self._nodes], dtype=np.float64)

    def initial_guess(self, s: Any = NoInput(0)) -> Arr1dF64:
        """
        A starting vector of length ``n``.

        Parameters
        ----------
        s : array_like, optional
            Quoted rates, in percent, of the instruments calibrating this curve. Quotes are
            mapped to the node in the same position if there is one per node, otherwise their
            mean is used at every node. If not given a neutral value is used at every node.

        Returns
        -------
        ndarray
        """
        if isinstance(s, NoInput) or s is None:
            return np.full(self.n, self._initial_value, dtype=np.float64)
        s_ = np.asarray(s, dtype=np.float64).ravel()
        if s_.shape[0] != self.n:
            s_ = np.full(self.n, np.mean(s_), dtype=np.float64)
        return self._guess_from_rates(s_)

    def _guess_from_rates(self, rates: Arr1dF64) -> Arr1dF64:
        return rates.copy()

    def variables(self, id: str) -> tuple[str, ...]:  # noqa: A002
        """The labels of the parameters when generating a curve named ``id``."""
        return tuple(f"{id}{i}" for i in range(self.n))

    def _validate_parameters(self, parameters: Any) -> Arr1dF64:
        parameters_ = np.asarray(parameters, dtype=np.float64).ravel()
        if parameters_.shape[0] != self.n:
            raise InvalidInput(IE_PARAMETER_LENGTH.format(parameters_.shape[0], self.n))
        return parameters_

    def __repr__(self) -> str:
        return f"<cc.{type(self).__name__} at {hex(id(self))}>"


class InterpolatedDFGenerator(CurveGenerator):
    """
    Generate a :class:`~curvecalib.curves.Curve` whose node values are discount factors.

    If the first abscissa is positive an anchor node, :math:`v(0)=1`, which is not a parameter,
    is added to generated curves.

    Examples
    --------
    .. ipython:: python

       from curvecalib.curves import InterpolatedDFGenerator

       generator = InterpolatedDFGenerator([1.0, 2.0, 5.0])
       curve = generator.generate_curve("sofr", [0.98, 0.96, 0.88])
       curve.nodes.nodes
    """

    _curve_type = Curve

    def _guess_from_rates(self, rates: Arr1dF64) -> Arr1dF64:
        # flat continuously compounded rate to each node
        return np.exp(-rates / 100.0 * np.array(self._nodes, dtype=np.float64))

    def _generate(
        self,
        id: str,  # noqa: A002
        parameters: Arr1dF64,
        bundle: CurveBundle | None,
    ) -> Curve:
        nodes = dict(zip(self._nodes, parameters.tolist(), strict=True))
        if self._nodes[0] > 0.0:
            nodes = {0.0: 1.0, **nodes}
        return Curve(nodes, interpolation=self._interpolation, id=id)


class InterpolatedZeroRateGenerator(CurveGenerator):
    """
    Generate a :class:`~curvecalib.curves.ZeroCurve` whose node values are continuously
    compounded zero rates, in percent.
    """

    _curve_type = ZeroCurve

    def _generate(
        self,
        id: str,  # noqa: A002
        parameters: Arr1dF64,
        bundle: CurveBundle | None,
    ) -> ZeroCurve:
        nodes = dict(zip(self._nodes, parameters.tolist(), strict=True))
        return ZeroCurve(nodes, interpolation=self._interpolation, id=id)


class InterpolatedLineGenerator(CurveGenerator):
    """
    Generate a :class:`~curvecalib.curves.LineCurve` of directly interpolated values.
    """

    _curve_type = LineCurve

    def _generate(
        self,
        id: str,  # noqa: A002
        parameters: Arr1dF64,
        bundle: CurveBundle | None,
    ) -> LineCurve:
        nodes = dict(zip(self._nodes, parameters.tolist(), strict=True))
        return LineCurve(nodes, interpolation=self._interpolation, id=id)


class ConstantZeroRateGenerator(CurveGenerator):
    """
    Generate a flat :class:`~curvecalib.curves.ZeroCurve` from a single zero rate parameter.
    """

    _curve_type = ZeroCurve

    def __init__(self) -> None:
        super().__init__([0.0], interpolation="flat_forward")

    def _generate(
        self,
        id: str,  # noqa: A002
        parameters: Arr1dF64,
        bundle: CurveBundle | None,
    ) -> ZeroCurve:
        return ZeroCurve({0.0: float(parameters[0])}, interpolation=self._interpolation, id=id)



class SpreadZeroRateGenerator(CurveGenerator):
    """
    Generate a :class:`~curvecalib.curves.SpreadZeroCurve` whose node values are zero rate
    spreads, in percent, over the discount curve stored under ``base_key``.

    The base curve is read from the bundle passed to
    :meth:`~curvecalib.curves.CurveGenerator.generate_curve`, which during calibration holds
    the curves of earlier rounds and any curve generated before this one in the same round.

    Parameters
    ----------
    nodes : sequence of float
        Strictly increasing, finite and non-negative node abscissas as year fractions.
    base_key : str
        The bundle key of the discount curve the spread is added to.
    interpolation : str, optional
        The interpolation of the spread. Defaults to ``defaults.interpolation["zero_rates"]``.

    Examples
    --------
    .. ipython:: python

       from curvecalib.curves import Curve, CurveBundle, SpreadZeroRateGenerator

       bundle = CurveBundle({"ois": Curve({0.0: 1.0, 5.0: 0.9}, id="ois")})
       generator = SpreadZeroRateGenerator([1.0, 5.0], "ois")
       curve = generator.generate_curve("libor", [0.2, 0.3], bundle)
       curve.zero_rate(5.0) - bundle["ois"].zero_rate(5.0)
    """

    _curve_type = SpreadZeroCurve
    _initial_value = 0.0

    def __init__(
        self,
        nodes: Sequence[float],
        base_key: str,
        interpolation: str | NoInput = NoInput(0),
    ) -> None:
        super().__init__(nodes, interpolation=interpolation)
        self.base_key = base_key

    def _guess_from_rates(self, rates: Arr1dF64) -> Arr1dF64:
        # spreads start flat at zero over the base curve
        return np.zeros(self.n, dtype=np.float64)

    def _generate(
        self,
        id: str,  # noqa: A002
        parameters: Arr1dF64,
        bundle: CurveBundle | None,
    ) -> SpreadZeroCurve:
        if bundle is None:
            raise InvalidInput(IE_SPREAD_NO_BUNDLE.format(self.base_key))
        base = bundle.get_discount_curve(self.base_key)
        nodes = dict(zip(self._nodes, parameters.tolist(), strict=True))
        return SpreadZeroCurve(base, nodes, interpolation=self._interpolation, id=id)
