from math import exp, log

import pytest
from curvecalib.curves import Curve, CurveBundle, LineCurve, ZeroCurve
from curvecalib.errors import InvalidInput
from curvecalib.instruments import FRA, IRS, Deposit, Value


@pytest.fixture()
def bundle():
    return CurveBundle(
        {
            "usd": Curve({0.0: 1.0, 1.0: 0.98, 5.0: 0.88}, id="sofr"),
            "fcst": LineCurve({0.0: 3.0, 5.0: 3.0}, id="libor"),
            "zero": ZeroCurve({0.0: 2.0, 5.0: 3.0}, id="z"),
        }
    )


class TestDeposit:
    def test_rate(self, bundle) -> None:
        result = Deposit(0.0, 1.0, "usd").rate(bundle)
        assert abs(result - (1.0 / 0.98 - 1.0) * 100.0) < 1e-12

    def test_uses_discount_curve(self, bundle) -> None:
        result = Deposit(0.0, 1.0, ("fcst", "usd")).rate(bundle)
        assert abs(result - (1.0 / 0.98 - 1.0) * 100.0) < 1e-12

    def test_line_curve_raises(self, bundle) -> None:
        with pytest.raises(InvalidInput, match="cannot return discount factors"):
            Deposit(0.0, 1.0, "fcst").rate(bundle)


class TestFRA:
    def test_rate_on_line_curve(self, bundle) -> None:
        assert FRA(1.0, 1.5, ("fcst", "usd")).rate(bundle) == 3.0

    def test_rate_on_df_curve(self, bundle) -> None:
        result = FRA(1.0, 5.0, "usd").rate(bundle)
        assert abs(result - (0.98 / 0.88 - 1.0) / 4.0 * 100.0) < 1e-12


class TestIRS:
    @pytest.mark.parametrize(
        ("start", "end", "frequency", "expected"),
        [
            (0.0, 2.0, 2, [0.0, 0.5, 1.0, 1.5, 2.0]),
            (0.0, 1.25, 2, [0.0, 0.5, 1.0, 1.25]),
            (0.0, 1.0, 1, [0.0, 1.0]),
            (1.0, 3.0, 1, [1.0, 2.0, 3.0]),
        ],
    )
    def test_schedule(self, start, end, frequency, expected) -> None:
        irs = IRS(start, end, frequency, curves="usd")
        assert irs.schedule == expected

    def test_default_frequency(self) -> None:
        assert IRS(0.0, 3.0, curves="usd").schedule == [0.0, 1.0, 2.0, 3.0]

    def test_annuity(self, bundle) -> None:
        curve = bundle["usd"]
        expected = sum(curve.df(t) for t in [1.0, 2.0, 3.0])
        result = IRS(0.0, 3.0, curves="usd").annuity(bundle)
        assert abs(result - expected) < 1e-15

    @pytest.mark.parametrize("frequency", [1, 2, 4])
    def test_single_curve_rate(self, bundle, frequency) -> None:
        # forecasting and discounting on one curve telescopes the floating leg
        irs = IRS(0.0, 5.0, frequency, curves="usd")
        expected = (1.0 - 0.88) / irs.annuity(bundle) * 100.0
        assert abs(irs.rate(bundle) - expected) < 1e-12

    def test_forward_starting_single_curve_rate(self, bundle) -> None:
        irs = IRS(1.0, 5.0, 2, curves="usd")
        expected = (0.98 - 0.88) / irs.annuity(bundle) * 100.0
        assert abs(irs.rate(bundle) - expected) < 1e-12

    def test_flat_forecast_curve(self, bundle) -> None:
        irs = IRS(0.0, 5.0, 2, curves=["fcst", "usd"])
        assert abs(irs.rate(bundle) - 3.0) < 1e-12

    def test_zero_curve(self, bundle) -> None:
        irs = IRS(0.0, 1.0, curves="zero")
        zero_rate = 2.0 + 1.0 / 5.0
        expected = (exp(zero_rate / 100.0) - 1.0) * 100.0
        assert abs(irs.rate(bundle) - expected) < 1e-12

    def test_no_curves_raises(self) -> None:
        with pytest.raises(InvalidInput, match="`curves` must be given for an IRS."):
            IRS(0.0, 1.0)

    def test_frequency_raises(self) -> None:
        with pytest.raises(InvalidInput, match="`frequency` must be positive"):
            IRS(0.0, 1.0, 0, curves="usd")


class TestValue:
    def test_curve_value(self, bundle) -> None:
        assert Value(2.5, "fcst").rate(bundle) == 3.0
        assert Value(1.0, "usd").rate(bundle) == 0.98

    def test_df(self, bundle) -> None:
        result = Value(5.0, "zero", metric="df").rate(bundle)
        assert abs(result - exp(-0.15)) < 1e-15

    def test_cc_zero_rate(self, bundle) -> None:
        result = Value(5.0, ["usd", "zero"], metric="CC_ZERO_RATE").rate(bundle)
        assert abs(result + log(0.88) / 5.0 * 100.0) < 1e-12

    def test_unknown_metric_raises(self) -> None:
        with pytest.raises(InvalidInput, match="`metric`: 'spread' must be in"):
            Value(1.0, "usd", metric="spread")


class TestValidation:
    @pytest.mark.parametrize("klass", [Deposit, FRA])
    def test_period_raises(self, klass) -> None:
        with pytest.raises(InvalidInput, match="`start` must be before `end`"):
            klass(1.0, 1.0, "usd")

    @pytest.mark.parametrize("curves", [[], ["a", "b", "c"]])
    def test_curves_raises(self, curves) -> None:
        with pytest.raises(InvalidInput, match="`curves` must be a bundle key"):
            Deposit(0.0, 1.0, curves)

    def test_curves_parsing(self) -> None:
        assert Deposit(0.0, 1.0, "usd").curves == ("usd", "usd")
        assert Deposit(0.0, 1.0, ["usd"]).curves == ("usd", "usd")
        assert Deposit(0.0, 1.0, ("fcst", "usd")).curves == ("fcst", "usd")

    def test_repr(self) -> None:
        irs = IRS(0.0, 1.0, curves="usd")
        assert repr(irs) == f"<cc.IRS at {hex(id(irs))}>"
