import pytest
from curvecalib import VectorRootFinder, __version__, default_context, defaults
from curvecalib.default import NoInput, _drb


def test_version() -> None:
    assert __version__ == "0.1.0"


def test_context_raises() -> None:
    with pytest.raises(ValueError, match="Need to invoke as "):
        default_context("only 1 arg")


def test_context_sets_and_reverts() -> None:
    with default_context("max_iter", 7, "decomposition", "qr"):
        assert defaults.max_iter == 7
        assert defaults.decomposition == "qr"
        finder = VectorRootFinder()
        assert finder.max_iter == 7
        assert finder.decomposition.name == "qr"
    assert defaults.max_iter == 50
    assert defaults.decomposition == "lu"


def test_reset_defaults() -> None:
    defaults.func_tol = 1e-3
    defaults.interpolation["dfs"] = "linear"
    assert defaults.func_tol == 1e-3

    defaults.reset_defaults()
    assert defaults.func_tol == 1e-12
    assert defaults.interpolation["dfs"] == "log_linear"


def test_defaults_singleton() -> None:
    from curvecalib.default import Defaults

    other = Defaults()
    assert id(other) == id(defaults)


def test_print_sections() -> None:
    result = defaults.print()
    assert "Curves:" in result
    assert "Root finding:" in result
    assert "Calibration:" in result
    assert "\tcalibration_mode: successive\n" in result


def test_print_lists_every_default() -> None:
    from curvecalib.default import DEFAULTS

    lines = [line for line in defaults.print().split("\n") if line.startswith("\t")]
    printed = [line[1:].split(":")[0] for line in lines]
    assert sorted(printed) == sorted(DEFAULTS)


def test_noinput_members() -> None:
    assert list(NoInput) == [NoInput.blank]


@pytest.mark.parametrize(
    ("default", "value", "expected"),
    [
        (1.0, NoInput(0), 1.0),
        (1.0, 2.0, 2.0),
        (1.0, None, None),
    ],
)
def test_drb(default, value, expected) -> None:
    assert _drb(default, value) == expected
