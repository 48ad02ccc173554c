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

from collections.abc import Iterator, Mapping

from pandas import DataFrame

from curvecalib.curves.curves import _BaseCurve, _DiscountCurve
from curvecalib.errors import IE_BUNDLE_FROZEN, IE_CURVE_NOT_DF, IE_KEY_NOT_IN_BUNDLE, InvalidInput


class CurveBundle:
    """
    A keyed collection of curves against which calibrating instruments are priced.

    Parameters
    ----------
    curves : dict[str, Curve, ZeroCurve or LineCurve], optional
        The initial content of the bundle.

    Notes
    -----
    A bundle is mutable until :meth:`freeze` is called. Curves are immutable so a
    :meth:`copy` of a bundle shares its curves with the original but each bundle may be
    extended independently.

    Examples
    --------
    .. ipython:: python

       from curvecalib.curves import Curve, CurveBundle

       bundle = CurveBundle({"usd": Curve({0.0: 1.0, 1.0: 0.97}, id="sofr")})
       bundle.get_name("usd")
       bundle.to_frame()
    """

    def __init__(self, curves: Mapping[str, _BaseCurve] | None = None) -> None:
        self._curves: dict[str, _BaseCurve] = {}
        self._frozen = False
        for key, curve in ({} if curves is None else curves).items():
            self.set_curve(key, curve)

    @property
    def frozen(self) -> bool:
        """Whether the bundle rejects modification."""
        return self._frozen

    def freeze(self) -> CurveBundle:
        """Prevent any further modification of the bundle and return it."""
        self._frozen = True
        return self

    def set_curve(self, key: str, curve: _BaseCurve) -> None:
        """
        Store a curve under a key, replacing any curve already there.

        Raises
        ------
        InvalidInput
            If the bundle is frozen or ``curve`` is not a curve.
        """
        if self._frozen:
            raise InvalidInput(IE_BUNDLE_FROZEN)
        if not isinstance(curve, _BaseCurve):
            raise InvalidInput(f"`curve` must be a curve object, got {type(curve).__name__}.")
        self._curves[key] = curve

    def get_curve(self, key: str) -> _BaseCurve:
        """Return the curve stored under ``key``."""
        try:
            return self._curves[key]
        except KeyError:
            raise InvalidInput(IE_KEY_NOT_IN_BUNDLE.format(key)) from None

    def get_discount_curve(self, key: str) -> _DiscountCurve:
        """Return the curve stored under ``key``, which must be able to return discount factors."""
        curve = self.get_curve(key)
        if not isinstance(curve, _DiscountCurve):
            raise InvalidInput(IE_CURVE_NOT_DF.format(key, type(curve).__name__))
        return curve

    def get_name(self, key: str) -> str:
        """Return the id of the curve stored under ``key``, as used for sensitivity labels."""
        return self.get_curve(key).id

    def keys(self) -> list[str]:
        return list(self._curves.keys())

    def copy(self) -> CurveBundle:
        """Return an unfrozen bundle containing the same curves."""
        return CurveBundle(self._curves)

    def to_frame(self) -> DataFrame:
        """
        Return the node values of every curve as a DataFrame indexed by key and abscissa.

        Returns
        -------
        DataFrame
        """
        records = [
            (key, curve.id, type(curve).__name__, t, v)
            for key, curve in self._curves.items()
            for t, v in curve.nodes.nodes.items()
        ]
        df = DataFrame(records, columns=["key", "id", "type", "t", "value"])
        return df.set_index(["key", "t"])

    def __getitem__(self, key: str) -> _BaseCurve:
        return self.get_curve(key)

    def __contains__(self, key: object) -> bool:
        return key in self._curves

    def __iter__(self) -> Iterator[str]:
        return iter(self._curves)

    def __len__(self) -> int:
        return len(self._curves)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CurveBundle):
            return False
        return self._curves == other._curves

    def __repr__(self) -> str:
        return f"<cc.CurveBundle:{self.keys()} at {hex(id(self))}>"
