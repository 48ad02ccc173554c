import pytest
from curvecalib.curves import Curve, CurveBundle, LineCurve, ZeroCurve
from curvecalib.errors import InvalidInput


@pytest.fixture()
def bundle():
    return CurveBundle(
        {
            "usd": Curve({0.0: 1.0, 1.0: 0.98}, id="sofr"),
            "fcst": LineCurve({0.0: 2.0, 1.0: 2.1}, id="libor"),
        }
    )


class TestCurveBundle:
    def test_get_curve(self, bundle) -> None:
        assert bundle.get_curve("usd").id == "sofr"
        assert bundle["fcst"].id == "libor"

    def test_get_name(self, bundle) -> None:
        assert bundle.get_name("fcst") == "libor"

    def test_missing_key_raises(self, bundle) -> None:
        with pytest.raises(InvalidInput, match="No curve is stored under the key: 'eur'"):
            bundle.get_curve("eur")

    def test_get_discount_curve(self, bundle) -> None:
        assert bundle.get_discount_curve("usd").df(1.0) == 0.98
        with pytest.raises(InvalidInput, match="cannot return discount factors"):
            bundle.get_discount_curve("fcst")

    def test_set_curve_replaces(self, bundle) -> None:
        bundle.set_curve("usd", ZeroCurve({0.0: 2.0}, id="flat"))
        assert bundle.get_name("usd") == "flat"
        assert len(bundle) == 2

    def test_set_curve_type_raises(self, bundle) -> None:
        with pytest.raises(InvalidInput, match="`curve` must be a curve object"):
            bundle.set_curve("eur", {0.0: 1.0})

    def test_frozen_raises(self, bundle) -> None:
        assert not bundle.frozen
        result = bundle.freeze()
        assert result is bundle
        assert bundle.frozen
        with pytest.raises(InvalidInput, match="The CurveBundle is frozen"):
            bundle.set_curve("eur", Curve({0.0: 1.0}))

    def test_copy_is_independent(self, bundle) -> None:
        bundle.freeze()
        other = bundle.copy()
        assert not other.frozen
        assert other == bundle
        other.set_curve("eur", Curve({0.0: 1.0}, id="estr"))
        assert "eur" in other
        assert "eur" not in bundle
        assert other.get_curve("usd") is bundle.get_curve("usd")

    def test_keys_and_iter(self, bundle) -> None:
        assert bundle.keys() == ["usd", "fcst"]
        assert list(bundle) == ["usd", "fcst"]

    def test_empty(self) -> None:
        bundle = CurveBundle()
        assert len(bundle) == 0
        assert bundle.keys() == []

    def test_eq(self, bundle) -> None:
        assert bundle != CurveBundle()
        assert bundle != "usd"

    def test_to_frame(self, bundle) -> None:
        result = bundle.to_frame()
        assert list(result.index.names) == ["key", "t"]
        assert list(result.columns) == ["id", "type", "value"]
        assert result.loc[("usd", 1.0), "value"] == 0.98
        assert result.loc[("fcst", 0.0), "type"] == "LineCurve"
        assert len(result) == 4

    def test_repr(self, bundle) -> None:
        assert repr(bundle) == f"<cc.CurveBundle:['usd', 'fcst'] at {hex(id(bundle))}>"
