import numpy as np
import pytest
from curvecalib import default_context
from curvecalib.errors import InvalidInput, NotPositiveDefinite, SingularMatrix
from curvecalib.solver import (
    DecompositionCholesky,
    DecompositionLU,
    DecompositionQR,
    DecompositionSVD,
    get_decomposition,
)
from numpy.testing import assert_allclose

ALL = [DecompositionLU, DecompositionQR, DecompositionSVD, DecompositionCholesky]
GENERAL = [DecompositionLU, DecompositionQR, DecompositionSVD]


class TestSolve:
    @pytest.mark.parametrize("klass", GENERAL)
    def test_solve_vector(self, klass):
        A = np.array([[4.0, 1.0], [2.0, 3.0]])
        result = klass().decompose(A).solve([1.0, 2.0])
        assert_allclose(result, [0.1, 0.6], atol=1e-14)

    @pytest.mark.parametrize("klass", ALL)
    def test_solve_spd_vector(self, klass):
        A = np.array([[4.0, 2.0], [2.0, 3.0]])
        result = klass().decompose(A).solve([1.0, 2.0])
        assert_allclose(result, [-0.125, 0.75], atol=1e-14)

    @pytest.mark.parametrize("klass", ALL)
    def test_solve_matrix_rhs(self, klass):
        A = np.array([[4.0, 2.0, 0.0], [2.0, 5.0, 1.0], [0.0, 1.0, 3.0]])
        B = np.array([[1.0, 0.0], [2.0, 1.0], [3.0, -1.0]])
        result = klass().decompose(A).solve(B)
        assert result.shape == (3, 2)
        assert_allclose(A @ result, B, atol=1e-13)

    @pytest.mark.parametrize("klass", ALL)
    def test_inverse(self, klass):
        A = np.array([[4.0, 2.0, 0.0], [2.0, 5.0, 1.0], [0.0, 1.0, 3.0]])
        result = klass().decompose(A).inverse()
        assert_allclose(result @ A, np.eye(3), atol=1e-13)

    @pytest.mark.parametrize("klass", ALL)
    def test_one_by_one(self, klass):
        result = klass().decompose([[2.0]]).solve([3.0])
        assert_allclose(result, [1.5])


class TestRaises:
    @pytest.mark.parametrize("klass", GENERAL)
    def test_singular(self, klass):
        A = np.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(SingularMatrix, match="singular to working precision"):
            klass().decompose(A)

    @pytest.mark.parametrize("klass", GENERAL)
    def test_zero_matrix(self, klass):
        with pytest.raises(SingularMatrix):
            klass().decompose(np.zeros((3, 3)))

    def test_cholesky_near_singular(self):
        A = np.array([[1.0, 1.0], [1.0, 1.0 + 1e-15]])
        with pytest.raises(SingularMatrix):
            DecompositionCholesky().decompose(A)

    def test_cholesky_not_symmetric(self):
        A = np.array([[4.0, 1.0], [2.0, 3.0]])
        with pytest.raises(NotPositiveDefinite, match="symmetric"):
            DecompositionCholesky().decompose(A)

    def test_cholesky_not_positive_definite(self):
        A = np.array([[1.0, 2.0], [2.0, 1.0]])
        with pytest.raises(NotPositiveDefinite, match="positive definite"):
            DecompositionCholesky().decompose(A)

    def test_not_positive_definite_is_invalid_input(self):
        assert issubclass(NotPositiveDefinite, InvalidInput)
        assert issubclass(SingularMatrix, ArithmeticError)

    @pytest.mark.parametrize("klass", ALL)
    @pytest.mark.parametrize(
        "A",
        [
            np.ones((2, 3)),
            np.ones(3),
            np.ones((0, 0)),
            np.array([[1.0, np.nan], [0.0, 1.0]]),
            np.array([[1.0, 0.0], [np.inf, 1.0]]),
        ],
    )
    def test_invalid_matrix(self, klass, A):
        with pytest.raises(InvalidInput):
            klass().decompose(A)

    @pytest.mark.parametrize("b", [[1.0, 2.0, 3.0], [1.0, np.nan], np.ones((2, 2, 2))])
    def test_invalid_rhs(self, b):
        result = DecompositionLU().decompose([[4.0, 1.0], [2.0, 3.0]])
        with pytest.raises(InvalidInput):
            result.solve(b)

    def test_relative_pivot_tolerance(self):
        # the relative pivots of this matrix are 1.0 and 0.625
        A = np.array([[4.0, 1.0], [2.0, 3.0]])
        DecompositionLU(singular_tol=0.6).decompose(A)
        with pytest.raises(SingularMatrix):
            DecompositionLU(singular_tol=0.7).decompose(A)

    def test_scale_invariant(self):
        A = np.array([[4.0, 1.0], [2.0, 3.0]]) * 1e-20
        result = DecompositionLU().decompose(A).solve([1e-20, 2e-20])
        assert_allclose(result, [0.1, 0.6])


class TestGetDecomposition:
    @pytest.mark.parametrize(
        ("name", "klass"),
        [
            ("lu", DecompositionLU),
            ("QR", DecompositionQR),
            ("svd", DecompositionSVD),
            ("cholesky", DecompositionCholesky),
        ],
    )
    def test_by_name(self, name, klass):
        assert type(get_decomposition(name)) is klass

    def test_instance_passthrough(self):
        decomposition = DecompositionQR(singular_tol=1e-8)
        assert get_decomposition(decomposition) is decomposition

    def test_default(self):
        assert type(get_decomposition()) is DecompositionLU
        with default_context("decomposition", "svd"):
            assert type(get_decomposition()) is DecompositionSVD

    def test_unknown_raises(self):
        with pytest.raises(InvalidInput, match="`decomposition`: 'gauss' is not recognised"):
            get_decomposition("gauss")

    def test_default_singular_tol(self):
        with default_context("singular_tol", 1e-6):
            assert DecompositionLU().singular_tol == 1e-6
        assert DecompositionLU().singular_tol == 1e-13
