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

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial
from time import time
from typing import Any
from uuid import uuid4

import numpy as np
from pandas import DataFrame, MultiIndex, Series

from curvecalib import defaults
from curvecalib.calibration.objective import CalibrationObjective
from curvecalib.curves import CurveBundle, CurveGenerator
from curvecalib.default import NoInput, _drb
from curvecalib.errors import (
    IE_CURVE_TRIPLET,
    IE_DUPLICATE_KEY,
    IE_GUESS_LENGTH,
    IE_LABELS_LENGTH,
    IE_NO_CURVES,
    IE_NO_GROUPS,
    IE_NO_INSTRUMENTS,
    IE_NON_SQUARE_GROUP,
    IE_NON_SQUARE_SYSTEM,
    IE_NOT_A_GROUP,
    IE_NOT_CALIBRATED,
    IE_QUOTES_LENGTH,
    IE_UNKNOWN_MODE,
    CalibrationError,
    InvalidInput,
)
from curvecalib.solver import VectorRootFinder, get_decomposition

logger = logging.getLogger(__name__)

Arr1dF64 = np.ndarray[tuple[int], np.dtype[np.float64]]
Arr2dF64 = np.ndarray[tuple[int, int], np.dtype[np.float64]]
CurveTriplet = tuple[str, str, CurveGenerator]


@dataclass(frozen=True)
class CurveBuildingBlock:
    """
    The location of one curve's parameters within a calibration parameter vector.

    Parameters
    ----------
    start : int
        The index of the curve's first parameter.
    n : int
        The number of parameters consumed by the curve.
    key : str
        The bundle key under which the generated curve is stored.
    """

    start: int
    n: int
    key: str

    @property
    def slice(self) -> slice:
        return slice(self.start, self.start + self.n)


def _check_unique(values: Sequence[str], kind: str) -> None:
    seen: set[str] = set()
    for value in values:
        if value in seen:
            raise InvalidInput(IE_DUPLICATE_KEY.format(kind, value))
        seen.add(value)


def _build_blocks(curves: Sequence[CurveTriplet]) -> dict[str, CurveBuildingBlock]:
    blocks, start = {}, 0
    for key, id_, generator in curves:
        blocks[id_] = CurveBuildingBlock(start=start, n=generator.n, key=key)
        start += generator.n
    return blocks


def _assemble_bundle(
    base: CurveBundle,
    curves: Sequence[CurveTriplet],
    blocks: dict[str, CurveBuildingBlock],
    x: Arr1dF64,
) -> CurveBundle:
    """
    Return a copy of ``base`` with every curve in ``curves`` generated from ``x``.

    Curves are generated in order so a generator may reference a curve set before it.
    """
    bundle = base.copy()
    for key, id_, generator in curves:
        bundle.set_curve(key, generator.generate_curve(id_, x[blocks[id_].slice], bundle))
    return bundle


class CalibrationGroup:
    """
    A set of curves and the instruments which calibrate them.

    Parameters
    ----------
    curves : sequence of tuple
        The curves to calibrate, each as a *(key, id, generator)* triplet: the bundle key to
        store the curve under, the curve id and the :class:`~curvecalib.curves.CurveGenerator`.
    instruments : sequence
        Calibrating instruments, each implementing `rate(bundle) -> float`.
    s : sequence of float
        The quoted rates the ``instruments`` are calibrated to.
    instrument_labels : sequence of str, optional
        Names of the calibrating instruments used to label diagnostics.
    initial_guess : sequence of float, optional
        The starting parameter vector for all curves of the group, in the order of ``curves``.
    id : str, optional
        The identifier of the group, used to label diagnostics.
    """

    def __init__(
        self,
        curves: Sequence[CurveTriplet],
        instruments: Sequence[Any],
        s: Sequence[float],
        instrument_labels: Sequence[str] | NoInput = NoInput(0),
        initial_guess: Sequence[float] | NoInput = NoInput(0),
        id: str | NoInput = NoInput(0),  # noqa: A002
    ) -> None:
        self.id = _drb(uuid4().hex[:5] + "_", id)  # 1 in a million clash

        self.curves: tuple[CurveTriplet, ...] = tuple(tuple(c) for c in curves)  # type: ignore[misc]
        if len(self.curves) == 0:
            raise InvalidInput(IE_NO_CURVES)
        for curve in self.curves:
            if len(curve) != 3 or not isinstance(curve[2], CurveGenerator):
                raise InvalidInput(IE_CURVE_TRIPLET.format(curve))
        _check_unique([c[0] for c in self.curves], "bundle key")
        _check_unique([c[1] for c in self.curves], "curve id")
        self.n = sum(c[2].n for c in self.curves)

        self.instruments = tuple(instruments)
        self.m = len(self.instruments)
        if self.m == 0:
            raise InvalidInput(IE_NO_INSTRUMENTS)
        self.s = np.asarray(s, dtype=np.float64).ravel()
        if self.s.shape[0] != self.m:
            raise InvalidInput(IE_QUOTES_LENGTH.format(self.s.shape[0], self.m))

        if isinstance(instrument_labels, NoInput) or instrument_labels is None:
            self.instrument_labels = tuple(f"{self.id}{i}" for i in range(self.m))
        elif len(instrument_labels) != self.m:
            raise InvalidInput(IE_LABELS_LENGTH)
        else:
            self.instrument_labels = tuple(instrument_labels)

        if isinstance(initial_guess, NoInput) or initial_guess is None:
            self.initial_guess: Arr1dF64 | None = None
        else:
            self.initial_guess = np.asarray(initial_guess, dtype=np.float64).ravel()
            if self.initial_guess.shape[0] != self.n:
                raise InvalidInput(IE_GUESS_LENGTH.format(self.initial_guess.shape[0], self.n))

    def __repr__(self) -> str:
        return f"<cc.CalibrationGroup:{self.id} at {hex(id(self))}>"


class CalibrationEngine:
    """
    Calibrate curves to market quotes by solving square systems of equations.

    Parameters
    ----------
    root_finder : VectorRootFinder, optional
        The root finder used for every solve. Defaults to a
        :class:`~curvecalib.solver.VectorRootFinder` configured from ``defaults``.
    id : str, optional
        The identifier of the engine.

    Notes
    -----
    In *"successive"* mode each :class:`CalibrationGroup` is solved in turn, as a bootstrap,
    and its curves are available to the instruments of later groups. In *"simultaneous"*
    mode all groups are combined into one system. Either mode may be selected by the
    caller; neither is inferred from the groups.

    The seed bundle passed to a calibration is never modified. Curves it contains, which
    are not being calibrated, are available to the instruments and a seed curve stored under
    the key of a calibrating curve provides that curve's initial guess. A new bundle is
    returned, frozen, only once every round has converged.

    Examples
    --------
    .. ipython:: python

       from curvecalib import CalibrationEngine, CalibrationGroup, InterpolatedDFGenerator, IRS

       group = CalibrationGroup(
           curves=[("usd", "sofr", InterpolatedDFGenerator([1.0, 2.0, 5.0]))],
           instruments=[IRS(0.0, t, 1, curves="usd") for t in [1.0, 2.0, 5.0]],
           s=[2.0, 2.2, 2.5],
           instrument_labels=["1Y", "2Y", "5Y"],
           id="usd",
       )
       engine = CalibrationEngine()
       bundle = engine.calibrate([group])
       engine.error

    Attributes
    ----------
    result : dict
        The status, mode, total iterations, time and per round root finder results of the
        last calibration.
    blocks : dict[str, CurveBuildingBlock]
        The location of each curve's parameters in ``x``, keyed by curve id.
    x : ndarray
        The calibrated parameters of all curves.
    variables : tuple[str]
        The labels of the elements of ``x``.
    instrument_labels : tuple[tuple[str, str]]
        The (group id, instrument label) of every calibrating instrument.
    """

    def __init__(
        self,
        root_finder: VectorRootFinder | NoInput = NoInput(0),
        id: str | NoInput = NoInput(0),  # noqa: A002
    ) -> None:
        self.root_finder = VectorRootFinder() if isinstance(root_finder, NoInput) else root_finder
        self.id = _drb(uuid4().hex[:5] + "_", id)  # 1 in a million clash
        self._reset_properties_()

    def _reset_properties_(self) -> None:
        self.result: dict[str, Any] = {
            "status": "INITIALISED",
            "mode": None,
            "iterations": 0,
            "time": None,
            "rounds": [],
        }
        self.groups: tuple[CalibrationGroup, ...] = ()
        self.blocks: dict[str, CurveBuildingBlock] = {}
        self.x: Arr1dF64 | None = None
        self.variables: tuple[str, ...] = ()
        self.instrument_labels: tuple[tuple[str, str], ...] = ()
        self._seed: CurveBundle | None = None
        self._bundle: CurveBundle | None = None
        self._J: Arr2dF64 | None = None
        self._grad_s_vT: Arr2dF64 | None = None

    def __repr__(self) -> str:
        return f"<cc.CalibrationEngine:{self.id} at {hex(id(self))}>"

    # Calibration

    def calibrate(
        self,
        groups: Sequence[CalibrationGroup],
        bundle: CurveBundle | None = None,
        mode: str | NoInput = NoInput(0),
    ) -> CurveBundle:
        """
        Calibrate the curves of ``groups`` in the given mode.

        Parameters
        ----------
        groups : sequence of CalibrationGroup
            The groups to calibrate, in order.
        bundle : CurveBundle, optional
            A seed bundle of fixed curves and initial guesses. It is not modified.
        mode : str in {"successive", "simultaneous"}, optional
            Defaults to ``defaults.calibration_mode``.

        Returns
        -------
        CurveBundle
        """
        mode_ = _drb(defaults.calibration_mode, mode).lower()
        if mode_ == "successive":
            return self.successive(groups, bundle)
        elif mode_ == "simultaneous":
            return self.simultaneous(groups, bundle)
        raise InvalidInput(IE_UNKNOWN_MODE.format(mode_))

    def successive(
        self, groups: Sequence[CalibrationGroup], bundle: CurveBundle | None = None
    ) -> CurveBundle:
        """
        Solve each group in turn, each round pricing against the curves of earlier rounds.

        Raises
        ------
        InvalidInput
            If the groups are malformed or any group is not square.
        SingularMatrix, NumericalOverflow, ConvergenceFailure
            If the root finder fails in any round. No bundle is returned.
        """
        groups_ = self._validate(groups, "successive")
        self._reset_properties_()
        t0 = time()
        seed = CurveBundle() if bundle is None else bundle.copy()
        working, rounds, xs = seed, [], []
        for k, group in enumerate(groups_):
            blocks = _build_blocks(group.curves)
            assemble = partial(_assemble_bundle, working, group.curves, blocks)
            objective = CalibrationObjective(group.instruments, group.s, assemble)
            x0 = self._initial_guess(group, blocks, bundle)
            try:
                x = self.root_finder.get_root(objective, x0, objective.jacobian)
            except CalibrationError as e:
                self._record_failure("successive", rounds, t0, group, e)
                raise
            rounds.append(self.root_finder.result)
            logger.info(
                "Calibration round %d, group '%s': %s in %d iterations.",
                k,
                group.id,
                self.root_finder.result["status"],
                self.root_finder.result["iterations"],
            )
            working = _assemble_bundle(working, group.curves, blocks, x)
            xs.append(x)
        x = np.concatenate(xs)
        return self._record_success("successive", groups_, seed, x, working, rounds, t0)

    def simultaneous(
        self, groups: Sequence[CalibrationGroup], bundle: CurveBundle | None = None
    ) -> CurveBundle:
        """
        Solve all groups as one combined system.

        Raises
        ------
        InvalidInput
            If the groups are malformed or the combined system is not square.
        SingularMatrix, NumericalOverflow, ConvergenceFailure
            If the root finder fails. No bundle is returned.
        """
        groups_ = self._validate(groups, "simultaneous")
        self._reset_properties_()
        t0 = time()
        seed = CurveBundle() if bundle is None else bundle.copy()
        curves = [c for group in groups_ for c in group.curves]
        blocks = _build_blocks(curves)
        objective = CalibrationObjective(
            [i for group in groups_ for i in group.instruments],
            np.concatenate([group.s for group in groups_]),
            partial(_assemble_bundle, seed, curves, blocks),
        )
        x0 = np.concatenate(
            [self._initial_guess(group, _build_blocks(group.curves), bundle) for group in groups_]
        )
        try:
            x = self.root_finder.get_root(objective, x0, objective.jacobian)
        except CalibrationError as e:
            self._record_failure("simultaneous", [], t0, None, e)
            raise
        rounds = [self.root_finder.result]
        logger.info(
            "Simultaneous calibration of %d groups: %s in %d iterations.",
            len(groups_),
            self.root_finder.result["status"],
            self.root_finder.result["iterations"],
        )
        working = _assemble_bundle(seed, curves, blocks, x)
        return self._record_success("simultaneous", groups_, seed, x, working, rounds, t0)

    def _validate(
        self, groups: Sequence[CalibrationGroup], mode: str
    ) -> tuple[CalibrationGroup, ...]:
        groups_ = tuple(groups)
        if len(groups_) == 0:
            raise InvalidInput(IE_NO_GROUPS)
        for group in groups_:
            if not isinstance(group, CalibrationGroup):
                raise InvalidInput(IE_NOT_A_GROUP.format(type(group).__name__))
        _check_unique([g.id for g in groups_], "group id")
        _check_unique([c[0] for g in groups_ for c in g.curves], "bundle key")
        _check_unique([c[1] for g in groups_ for c in g.curves], "curve id")

        if mode == "successive":
            for group in groups_:
                if group.m != group.n:
                    raise InvalidInput(IE_NON_SQUARE_GROUP.format(group.id, group.m, group.n))
        else:
            m, n = sum(g.m for g in groups_), sum(g.n for g in groups_)
            if m != n:
                raise InvalidInput(IE_NON_SQUARE_SYSTEM.format(m, n))
        return groups_

    @staticmethod
    def _initial_guess(
        group: CalibrationGroup,
        blocks: dict[str, CurveBuildingBlock],
        seed: CurveBundle | None,
    ) -> Arr1dF64:
        if group.initial_guess is not None:
            return group.initial_guess.copy()
        x0 = np.empty(group.n, dtype=np.float64)
        for key, id_, generator in group.curves:
            # a square group maps its quotes onto the curves in order
            s = group.s[blocks[id_].slice] if group.m == group.n else group.s
            x0[blocks[id_].slice] = generator.initial_guess(s)
            if seed is not None and key in seed:
                try:
                    x0[blocks[id_].slice] = generator.get_parameters(seed[key])
                except InvalidInput:
                    logger.debug(
                        "Seed curve under key '%s' is not compatible with its generator: "
                        "using the generator's initial guess.",
                        key,
                    )
        return x0

    def _record_success(
        self,
        mode: str,
        groups: tuple[CalibrationGroup, ...],
        seed: CurveBundle,
        x: Arr1dF64,
        bundle: CurveBundle,
        rounds: list[dict[str, Any]],
        t0: float,
    ) -> CurveBundle:
        curves = [c for group in groups for c in group.curves]
        self.groups = groups
        self.blocks = _build_blocks(curves)
        self.x = x
        self.variables = tuple(v for _, id_, gen in curves for v in gen.variables(id_))
        self.instrument_labels = tuple(
            (group.id, label) for group in groups for label in group.instrument_labels
        )
        self._seed = seed
        self._bundle = bundle.freeze()
        self.result = {
            "status": "SUCCESS",
            "mode": mode,
            "iterations": sum(r["iterations"] for r in rounds),
            "time": time() - t0,
            "rounds": rounds,
        }
        logger.info(
            "Calibration '%s' (%s) complete: %d curves, %d iterations, `time`: %.4fs",
            self.id,
            mode,
            len(curves),
            self.result["iterations"],
            self.result["time"],
        )
        return self._bundle

    def _record_failure(
        self,
        mode: str,
        rounds: list[dict[str, Any]],
        t0: float,
        group: CalibrationGroup | None,
        error: CalibrationError,
    ) -> None:
        if not isinstance(error, InvalidInput):
            # the root finder records its own failure state
            rounds = rounds + [self.root_finder.result]
        self.result = {
            "status": "FAILURE",
            "mode": mode,
            "iterations": sum(r["iterations"] for r in rounds),
            "time": time() - t0,
            "rounds": rounds,
        }
        logger.warning(
            "Calibration '%s' (%s) failed%s: %s",
            self.id,
            mode,
            "" if group is None else f" in group '{group.id}'",
            error,
        )

    # Diagnostics

    def _check_calibrated(self) -> None:
        if self._bundle is None:
            raise InvalidInput(IE_NOT_CALIBRATED)

    @property
    def bundle(self) -> CurveBundle:
        """The frozen bundle returned by the last successful calibration."""
        self._check_calibrated()
        return self._bundle  # type: ignore[return-value]

    @property
    def error(self) -> Series:
        """
        Return the residual of each calibrating instrument priced from the calibrated bundle.

        Returns
        -------
        Series
        """
        self._check_calibrated()
        r = [
            instrument.rate(self._bundle) - s
            for group in self.groups
            for instrument, s in zip(group.instruments, group.s, strict=True)
        ]
        return Series(r, index=MultiIndex.from_tuples(self.instrument_labels))

    @property
    def J(self) -> Arr2dF64:
        """
        2d Jacobian array of calibrating instrument rates with respect to curve variables,
        of size (n, m);

        .. math::

           [J]_{i,j} = [\\nabla_\\mathbf{v} \\mathbf{r^T}]_{i,j} = \\frac{\\partial r_j}{\\partial v_i}

        Evaluated by finite difference over the full parameter vector, regardless of mode.
        """
        self._check_calibrated()
        if self._J is None:
            curves = [c for group in self.groups for c in group.curves]
            objective = CalibrationObjective(
                [i for group in self.groups for i in group.instruments],
                np.concatenate([group.s for group in self.groups]),
                partial(_assemble_bundle, self._seed, curves, self.blocks),
            )
            self._J = objective.jacobian(self.x).T
        return self._J

    @property
    def grad_s_vT(self) -> Arr2dF64:
        """
        2d Jacobian array of curve variables with respect to calibrating instruments,
        of size (m, n);

        .. math::

           [\\nabla_\\mathbf{s}\\mathbf{v^T}]_{i,j} = \\frac{\\partial v_j}{\\partial s_i} = \\mathbf{J^{-1}}
        """
        if self._grad_s_vT is None:
            decomposition = get_decomposition(self.root_finder.decomposition)
            self._grad_s_vT = decomposition.decompose(self.J).inverse()
        return self._grad_s_vT

    def jacobian_frame(self) -> DataFrame:
        """
        Return :attr:`J` as a DataFrame indexed by curve variable with instrument columns.

        Returns
        -------
        DataFrame
        """
        return DataFrame(
            self.J,
            index=list(self.variables),
            columns=MultiIndex.from_tuples(self.instrument_labels),
        )
