import logging

import numpy as np
import pytest
from curvecalib import (
    FRA,
    IRS,
    CalibrationEngine,
    CalibrationGroup,
    CalibrationObjective,
    ConstantZeroRateGenerator,
    ConvergenceFailure,
    Curve,
    CurveBuildingBlock,
    CurveBundle,
    Deposit,
    InterpolatedDFGenerator,
    InterpolatedLineGenerator,
    InterpolatedZeroRateGenerator,
    InvalidInput,
    LineCurve,
    SingularMatrix,
    SpreadZeroRateGenerator,
    Value,
    VectorRootFinder,
    default_context,
)
from numpy.testing import assert_allclose
from pandas import MultiIndex, Series
from pandas.testing import assert_series_equal


def usd_group(**kwargs):
    return CalibrationGroup(
        curves=[("usd", "sofr", InterpolatedDFGenerator([1.0, 2.0, 5.0]))],
        instruments=[IRS(0.0, t, 1, curves="usd") for t in [1.0, 2.0, 5.0]],
        s=[2.0, 2.2, 2.5],
        instrument_labels=["1Y", "2Y", "5Y"],
        id="usd",
        **kwargs,
    )


def two_groups():
    disc = CalibrationGroup(
        curves=[("usd", "sofr", InterpolatedDFGenerator([1.0, 2.0]))],
        instruments=[IRS(0.0, 1.0, curves="usd"), IRS(0.0, 2.0, curves="usd")],
        s=[2.0, 2.5],
        id="disc",
    )
    fcst = CalibrationGroup(
        curves=[("fcst", "libor", InterpolatedLineGenerator([0.0, 1.0]))],
        instruments=[FRA(0.0, 0.5, ("fcst", "usd")), IRS(0.0, 2.0, curves=("fcst", "usd"))],
        s=[3.0, 3.2],
        id="fcst",
    )
    return [disc, fcst]


def spread_group():
    curves = ("fcst", "usd")
    return CalibrationGroup(
        curves=[("fcst", "libor", SpreadZeroRateGenerator([1.0, 2.0], "usd"))],
        instruments=[IRS(0.0, 1.0, curves=curves), IRS(0.0, 2.0, curves=curves)],
        s=[2.25, 2.8],
        id="spread",
    )


class TestCalibrationGroup:
    def test_attributes(self) -> None:
        group = usd_group()
        assert group.n == 3
        assert group.m == 3
        assert group.instrument_labels == ("1Y", "2Y", "5Y")
        assert group.initial_guess is None
        assert_allclose(group.s, [2.0, 2.2, 2.5])

    def test_default_labels(self) -> None:
        group = CalibrationGroup(
            curves=[("usd", "sofr", InterpolatedDFGenerator([1.0]))],
            instruments=[Deposit(0.0, 1.0, "usd")],
            s=[2.0],
            id="g",
        )
        assert group.instrument_labels == ("g0",)

    def test_random_id(self) -> None:
        group = CalibrationGroup(
            curves=[("usd", "sofr", InterpolatedDFGenerator([1.0]))],
            instruments=[Deposit(0.0, 1.0, "usd")],
            s=[2.0],
        )
        assert len(group.id) == 6

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            (dict(curves=[]), "requires at least one curve"),
            (dict(curves=[("usd", "sofr")]), "triplets"),
            (dict(curves=[("usd", "sofr", Curve({0.0: 1.0}))]), "triplets"),
            (
                dict(
                    curves=[
                        ("usd", "a", InterpolatedDFGenerator([1.0])),
                        ("usd", "b", InterpolatedDFGenerator([2.0])),
                    ]
                ),
                "unique bundle key, got duplicate: 'usd'",
            ),
            (
                dict(
                    curves=[
                        ("usd", "a", InterpolatedDFGenerator([1.0])),
                        ("eur", "a", InterpolatedDFGenerator([2.0])),
                    ]
                ),
                "unique curve id, got duplicate: 'a'",
            ),
            (dict(instruments=[], s=[]), "At least one calibrating instrument"),
            (dict(s=[2.0]), "`s` must be same length as `instruments`"),
            (dict(instrument_labels=["1Y"]), "`instrument_labels` must have length"),
            (dict(initial_guess=[0.99]), "`initial_guess` of length 1"),
        ],
    )
    def test_raises(self, kwargs, match) -> None:
        base = dict(
            curves=[("usd", "sofr", InterpolatedDFGenerator([1.0, 2.0]))],
            instruments=[Deposit(0.0, 1.0, "usd"), Deposit(0.0, 2.0, "usd")],
            s=[2.0, 2.1],
        )
        base.update(kwargs)
        with pytest.raises(InvalidInput, match=match):
            CalibrationGroup(**base)


class TestCalibrationObjective:
    def test_residuals(self) -> None:
        bundle = CurveBundle({"usd": Curve({0.0: 1.0, 1.0: 0.98})})
        objective = CalibrationObjective(
            [Deposit(0.0, 1.0, "usd"), Value(1.0, "usd")],
            [2.0, 0.9],
            lambda x: bundle,
        )
        result = objective([0.0])
        assert_allclose(result, [(1.0 / 0.98 - 1.0) * 100.0 - 2.0, 0.08], atol=1e-14)

    def test_jacobian(self) -> None:
        generator = InterpolatedDFGenerator([1.0])
        objective = CalibrationObjective(
            [Deposit(0.0, 1.0, "usd")],
            [2.0],
            lambda x: CurveBundle({"usd": generator.generate_curve("sofr", x)}),
        )
        result = objective.jacobian([0.98])
        assert_allclose(result, [[-100.0 / 0.98**2]], rtol=1e-8)

    def test_raises(self) -> None:
        with pytest.raises(InvalidInput, match="At least one calibrating instrument"):
            CalibrationObjective([], [], lambda x: CurveBundle())
        with pytest.raises(InvalidInput, match="`s` must be same length"):
            CalibrationObjective([Value(1.0, "usd")], [1.0, 2.0], lambda x: CurveBundle())


class TestSuccessive:
    def test_reprices_quotes(self) -> None:
        engine = CalibrationEngine()
        bundle = engine.calibrate([usd_group()])
        assert (engine.error.abs() < 1e-10).all()
        for t, s in zip([1.0, 2.0, 5.0], [2.0, 2.2, 2.5], strict=True):
            assert abs(IRS(0.0, t, 1, curves="usd").rate(bundle) - s) < 1e-10
        assert engine.result["status"] == "SUCCESS"
        assert engine.result["mode"] == "successive"
        assert len(engine.result["rounds"]) == 1

    def test_one_year_closed_form(self) -> None:
        engine = CalibrationEngine()
        bundle = engine.calibrate([usd_group()])
        assert abs(bundle["usd"].df(1.0) - 1.0 / 1.02) < 1e-12

    def test_result_is_frozen(self) -> None:
        engine = CalibrationEngine()
        bundle = engine.calibrate([usd_group()])
        assert bundle.frozen
        assert engine.bundle is bundle
        assert bundle.get_name("usd") == "sofr"
        with pytest.raises(InvalidInput, match="frozen"):
            bundle.set_curve("usd", Curve({0.0: 1.0}))

    def test_recalibration_from_result_is_immediate(self) -> None:
        engine = CalibrationEngine()
        bundle = engine.calibrate([usd_group()])
        x = engine.x.copy()
        result = engine.calibrate([usd_group()], bundle=bundle)
        assert engine.result["iterations"] == 0
        assert_allclose(engine.x, x, atol=1e-15)
        assert result is not bundle

    def test_seed_not_modified(self) -> None:
        fixed = Curve({0.0: 1.0, 5.0: 0.9}, id="ois")
        seed = CurveBundle({"ois": fixed})
        engine = CalibrationEngine()
        result = engine.calibrate([usd_group()], bundle=seed)
        assert seed.keys() == ["ois"]
        assert not seed.frozen
        assert result.keys() == ["ois", "usd"]
        assert result["ois"] is fixed

    def test_fixed_seed_curve_is_priced(self) -> None:
        seed = CurveBundle({"usd": Curve({0.0: 1.0, 5.0: 0.88}, id="sofr")})
        group = CalibrationGroup(
            curves=[("fcst", "libor", InterpolatedLineGenerator([0.0]))],
            instruments=[IRS(0.0, 5.0, 2, curves=("fcst", "usd"))],
            s=[3.1],
            id="fcst",
        )
        bundle = CalibrationEngine().calibrate([group], bundle=seed)
        assert abs(bundle["fcst"][3.0] - 3.1) < 1e-10
        assert bundle["usd"] is seed["usd"]

    def test_incompatible_seed_curve_uses_generator_guess(self) -> None:
        seed = CurveBundle({"usd": LineCurve({0.0: 2.0})})
        engine = CalibrationEngine()
        bundle = engine.calibrate([usd_group()], bundle=seed)
        assert type(bundle["usd"]) is Curve
        assert (engine.error.abs() < 1e-10).all()

    def test_explicit_initial_guess(self) -> None:
        engine = CalibrationEngine()
        engine.calibrate([usd_group(initial_guess=[0.98, 0.96, 0.88])])
        assert (engine.error.abs() < 1e-10).all()

    @pytest.mark.parametrize("method", ["newton", "broyden", "sherman_morrison", "newton_inverse"])
    def test_root_finders(self, method) -> None:
        engine = CalibrationEngine(root_finder=VectorRootFinder(method=method))
        engine.calibrate([usd_group()])
        assert (engine.error.abs() < 1e-10).all()

    @pytest.mark.parametrize("method", ["broyden", "sherman_morrison"])
    def test_secant_updates_match_recompute(self, method) -> None:
        newton = CalibrationEngine(root_finder=VectorRootFinder.newton())
        newton.calibrate([usd_group()])
        secant = CalibrationEngine(root_finder=VectorRootFinder(method=method))
        secant.calibrate([usd_group()])
        assert_allclose(secant.x, newton.x, atol=1e-12)

    @pytest.mark.parametrize("method", ["newton", "broyden", "sherman_morrison"])
    def test_thirty_year_quarterly_curve(self, method) -> None:
        tenors = range(1, 31)
        group = CalibrationGroup(
            curves=[("usd", "sofr", InterpolatedDFGenerator(tenors))],
            instruments=[IRS(0.0, float(t), 4, curves="usd") for t in tenors],
            s=[2.0 + 0.05 * i for i in range(30)],
        )
        engine = CalibrationEngine(root_finder=VectorRootFinder(method=method))
        bundle = engine.calibrate([group])
        assert (engine.error.abs() < 1e-10).all()
        assert 0.0 < bundle["usd"].df(30.0) < bundle["usd"].df(1.0) < 1.0

    def test_two_groups(self) -> None:
        engine = CalibrationEngine()
        bundle = engine.calibrate(two_groups())
        assert (engine.error.abs() < 1e-10).all()
        assert bundle.keys() == ["usd", "fcst"]
        assert len(engine.result["rounds"]) == 2
        assert engine.result["iterations"] == sum(
            r["iterations"] for r in engine.result["rounds"]
        )
        assert abs(bundle["fcst"][0.0] - 3.0) < 1e-10

    def test_spread_curve_over_earlier_group(self) -> None:
        disc, _ = two_groups()
        engine = CalibrationEngine()
        bundle = engine.calibrate([disc, spread_group()])
        assert (engine.error.abs() < 1e-10).all()
        assert bundle["fcst"].base is bundle["usd"]
        assert bundle["fcst"][1.0] > 0.0
        assert bundle["fcst"].zero_rate(2.0) > bundle["usd"].zero_rate(2.0)

    def test_zero_rate_generators(self) -> None:
        group = CalibrationGroup(
            curves=[("usd", "z", InterpolatedZeroRateGenerator([1.0, 3.0]))],
            instruments=[Deposit(0.0, 1.0, "usd"), IRS(0.0, 3.0, curves="usd")],
            s=[2.0, 2.5],
        )
        flat = CalibrationGroup(
            curves=[("eur", "flat", ConstantZeroRateGenerator())],
            instruments=[Value(2.0, "eur", metric="cc_zero_rate")],
            s=[1.5],
        )
        engine = CalibrationEngine()
        bundle = engine.calibrate([group, flat])
        assert (engine.error.abs() < 1e-10).all()
        assert abs(bundle["eur"].zero_rate(10.0) - 1.5) < 1e-10

    def test_logs_rounds(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="curvecalib"):
            CalibrationEngine(id="eng").calibrate(two_groups())
        assert "Calibration round 0, group 'disc': SUCCESS" in caplog.text
        assert "Calibration round 1, group 'fcst': SUCCESS" in caplog.text
        assert "Calibration 'eng' (successive) complete" in caplog.text


class TestSimultaneous:
    def test_matches_successive(self) -> None:
        successive = CalibrationEngine()
        successive.calibrate(two_groups(), mode="successive")
        simultaneous = CalibrationEngine()
        bundle = simultaneous.calibrate(two_groups(), mode="simultaneous")
        assert_allclose(simultaneous.x, successive.x, atol=1e-10)
        assert (simultaneous.error.abs() < 1e-10).all()
        assert simultaneous.result["mode"] == "simultaneous"
        assert len(simultaneous.result["rounds"]) == 1
        assert bundle.frozen

    def test_default_mode(self) -> None:
        engine = CalibrationEngine()
        with default_context("calibration_mode", "simultaneous"):
            engine.calibrate([usd_group()])
        assert engine.result["mode"] == "simultaneous"

    def test_spread_curve_matches_successive(self) -> None:
        disc, _ = two_groups()
        successive = CalibrationEngine()
        successive.calibrate([disc, spread_group()], mode="successive")
        simultaneous = CalibrationEngine()
        bundle = simultaneous.calibrate([disc, spread_group()], mode="simultaneous")
        assert_allclose(simultaneous.x, successive.x, atol=1e-10)
        assert bundle["fcst"].base is bundle["usd"]

    def test_group_need_not_be_square(self) -> None:
        # the combined system is square even though neither group is
        a = CalibrationGroup(
            curves=[("usd", "sofr", InterpolatedDFGenerator([1.0, 2.0]))],
            instruments=[IRS(0.0, 1.0, curves="usd")],
            s=[2.0],
            id="a",
        )
        b = CalibrationGroup(
            curves=[("fcst", "libor", InterpolatedLineGenerator([0.0]))],
            instruments=[IRS(0.0, 2.0, curves="usd"), FRA(0.0, 1.0, ("fcst", "usd"))],
            s=[2.5, 3.0],
            id="b",
        )
        engine = CalibrationEngine()
        engine.calibrate([a, b], mode="simultaneous")
        assert (engine.error.abs() < 1e-10).all()
        with pytest.raises(InvalidInput, match="CalibrationGroup a is not square"):
            engine.calibrate([a, b], mode="successive")


class TestFailure:
    def singular_group(self):
        return CalibrationGroup(
            curves=[("eur", "estr", InterpolatedDFGenerator([1.0, 2.0]))],
            instruments=[IRS(0.0, 1.0, curves="eur"), IRS(0.0, 1.0, curves="eur")],
            s=[2.0, 2.5],
            id="bad",
        )

    def test_singular_system(self, caplog) -> None:
        seed = CurveBundle({"ois": Curve({0.0: 1.0})})
        engine = CalibrationEngine(id="eng")
        with caplog.at_level(logging.WARNING, logger="curvecalib"):
            with pytest.raises(SingularMatrix):
                engine.calibrate([usd_group(), self.singular_group()], bundle=seed)
        assert engine.result["status"] == "FAILURE"
        assert len(engine.result["rounds"]) == 2
        assert engine.result["rounds"][-1]["state"] == -3
        assert "failed in group 'bad'" in caplog.text
        assert seed.keys() == ["ois"]
        assert not seed.frozen
        with pytest.raises(InvalidInput, match="has not yet completed a calibration"):
            engine.bundle

    def test_max_iter(self) -> None:
        engine = CalibrationEngine(root_finder=VectorRootFinder(max_iter=1))
        with pytest.raises(ConvergenceFailure):
            engine.calibrate([usd_group()])
        assert engine.result["status"] == "FAILURE"
        assert engine.result["iterations"] == 1

    def test_failure_discards_previous_result(self) -> None:
        engine = CalibrationEngine()
        engine.calibrate([usd_group()])
        with pytest.raises(SingularMatrix):
            engine.calibrate([self.singular_group()], mode="simultaneous")
        assert engine.x is None
        with pytest.raises(InvalidInput, match="has not yet completed"):
            engine.error


class TestValidation:
    def test_no_groups(self) -> None:
        with pytest.raises(InvalidInput, match="At least one CalibrationGroup"):
            CalibrationEngine().calibrate([])

    def test_not_a_group(self) -> None:
        with pytest.raises(InvalidInput, match="must contain CalibrationGroup objects"):
            CalibrationEngine().calibrate([usd_group(), "eur"])

    def test_unknown_mode(self) -> None:
        with pytest.raises(InvalidInput, match="`mode`: 'bootstrap' is not recognised"):
            CalibrationEngine().calibrate([usd_group()], mode="bootstrap")

    def test_duplicate_group_id(self) -> None:
        with pytest.raises(InvalidInput, match="unique group id, got duplicate: 'usd'"):
            CalibrationEngine().calibrate([usd_group(), usd_group()])

    def test_duplicate_key_across_groups(self) -> None:
        groups = two_groups()
        other = CalibrationGroup(
            curves=[("usd", "other", InterpolatedDFGenerator([1.0]))],
            instruments=[Deposit(0.0, 1.0, "usd")],
            s=[2.0],
        )
        with pytest.raises(InvalidInput, match="unique bundle key, got duplicate: 'usd'"):
            CalibrationEngine().calibrate(groups + [other])

    def test_non_square_group(self) -> None:
        group = CalibrationGroup(
            curves=[("usd", "sofr", InterpolatedDFGenerator([1.0, 2.0]))],
            instruments=[Deposit(0.0, 1.0, "usd")],
            s=[2.0],
            id="g",
        )
        with pytest.raises(InvalidInput, match="1 instruments for 2 curve parameters"):
            CalibrationEngine().calibrate([group])
        with pytest.raises(InvalidInput, match="The simultaneous system is not square"):
            CalibrationEngine().calibrate([group], mode="simultaneous")

    def test_diagnostics_before_calibration(self) -> None:
        engine = CalibrationEngine()
        assert engine.result["status"] == "INITIALISED"
        for attr in ["bundle", "error", "J", "grad_s_vT"]:
            with pytest.raises(InvalidInput, match="has not yet completed"):
                getattr(engine, attr)


class TestDiagnostics:
    def test_labels(self) -> None:
        engine = CalibrationEngine()
        engine.calibrate(two_groups())
        assert engine.variables == ("sofr0", "sofr1", "libor0", "libor1")
        assert engine.instrument_labels == (
            ("disc", "disc0"),
            ("disc", "disc1"),
            ("fcst", "fcst0"),
            ("fcst", "fcst1"),
        )
        assert engine.blocks == {
            "sofr": CurveBuildingBlock(start=0, n=2, key="usd"),
            "libor": CurveBuildingBlock(start=2, n=2, key="fcst"),
        }

    def test_error_index(self) -> None:
        engine = CalibrationEngine()
        engine.calibrate([usd_group()])
        assert list(engine.error.index) == [("usd", "1Y"), ("usd", "2Y"), ("usd", "5Y")]
        expected = Series(
            [0.0, 0.0, 0.0],
            index=MultiIndex.from_tuples([("usd", "1Y"), ("usd", "2Y"), ("usd", "5Y")]),
        )
        assert_series_equal(engine.error, expected, check_exact=False, atol=1e-10)

    def test_jacobian_shape_and_structure(self) -> None:
        engine = CalibrationEngine()
        engine.calibrate(two_groups())
        J = engine.J
        assert J.shape == (4, 4)
        # forecasting curve variables do not affect the discounting instruments
        assert_allclose(J[2:, :2], 0.0, atol=1e-12)
        assert engine.J is J

    @pytest.mark.parametrize("mode", ["successive", "simultaneous"])
    def test_grad_s_vT_inverts_J(self, mode) -> None:
        engine = CalibrationEngine()
        engine.calibrate(two_groups(), mode=mode)
        assert_allclose(engine.grad_s_vT @ engine.J, np.eye(4), atol=1e-9)

    def test_one_year_sensitivity(self) -> None:
        engine = CalibrationEngine()
        engine.calibrate([usd_group()])
        # v = 1 / (1 + s / 100) for the 1Y swap
        v = 1.0 / 1.02
        assert abs(engine.grad_s_vT[0, 0] + v**2 / 100.0) < 1e-9

    def test_jacobian_frame(self) -> None:
        engine = CalibrationEngine()
        engine.calibrate([usd_group()])
        df = engine.jacobian_frame()
        assert list(df.index) == ["sofr0", "sofr1", "sofr2"]
        assert list(df.columns) == [("usd", "1Y"), ("usd", "2Y"), ("usd", "5Y")]
        assert_allclose(df.to_numpy(), engine.J)

    def test_building_block_slice(self) -> None:
        block = CurveBuildingBlock(start=2, n=3, key="usd")
        assert block.slice == slice(2, 5)
        assert list(np.arange(6)[block.slice]) == [2, 3, 4]

    def test_repr(self) -> None:
        engine = CalibrationEngine(id="eng")
        assert repr(engine) == f"<cc.CalibrationEngine:eng at {hex(id(engine))}>"
        group = usd_group()
        assert repr(group) == f"<cc.CalibrationGroup:usd at {hex(id(group))}>"
