"""Tests for the generalized eigensolver adapter."""
import numpy as np
import pytest

from kinematic_fitting import eigensolver
from kinematic_fitting.eigensolver import (
    GeneralizedEigenpairs,
    rayleigh_errors,
    select_min_eigenvalue,
    select_min_rayleigh,
    solve_best_fit,
    solve_generalized_eigenproblem,
)
from kinematic_fitting.errors import EigensolveFailedError, NoValidSolutionError


def unit(v):
    return np.asarray(v) / np.linalg.norm(v)


class TestSolve:

    def test_diagonal_pencil(self):
        M = np.diag([3.0, 1.0, 2.0])
        pairs = solve_generalized_eigenproblem(M, np.eye(3))

        eigvals = np.sort(pairs.alpha.real / pairs.beta)
        np.testing.assert_allclose(eigvals, [1.0, 2.0, 3.0])
        assert pairs.vectors.shape == (3, 3)

    def test_inputs_not_modified(self):
        M = np.array([[2.0, 1.0], [1.0, 3.0]])
        N = np.array([[1.0, 0.2], [0.2, 1.0]])
        M0, N0 = M.copy(), N.copy()
        solve_generalized_eigenproblem(M, N)
        np.testing.assert_array_equal(M, M0)
        np.testing.assert_array_equal(N, N0)

    def test_eigenpairs_satisfy_pencil(self):
        rng = np.random.default_rng(0)
        A = rng.normal(size=(5, 5))
        B = rng.normal(size=(5, 5))
        M, N = A @ A.T, B @ B.T + 5 * np.eye(5)
        pairs = solve_generalized_eigenproblem(M, N)

        for i in range(5):
            x = pairs.vectors[:, i]
            np.testing.assert_allclose(pairs.beta[i] * M @ x, pairs.alpha[i].real * N @ x, atol=1e-9)


class TestModeA:

    def test_picks_smallest_magnitude(self):
        x = solve_best_fit(np.diag([3.0, -0.5, 2.0]), np.eye(3))
        np.testing.assert_allclose(np.abs(unit(x)), [0.0, 1.0, 0.0], atol=1e-12)

    def test_skips_zero_denominator(self):
        # Second eigenpair is infinite (beta = 0)
        x = solve_best_fit(np.diag([2.0, 1.0]), np.diag([1.0, 0.0]))
        np.testing.assert_allclose(np.abs(unit(x)), [1.0, 0.0], atol=1e-12)

    def test_complex_only_has_no_solution(self):
        rotation = np.array([[0.0, -1.0], [1.0, 0.0]])
        with pytest.raises(NoValidSolutionError):
            solve_best_fit(rotation, np.eye(2))

    def test_selection_on_handmade_pairs(self):
        pairs = GeneralizedEigenpairs(
            alpha=np.array([0.1 + 0.5j, 4.0 + 0.0j, 1.0 + 0.0j]),
            beta=np.array([1.0, 2.0, 0.0]),
            vectors=np.eye(3),
        )
        # 0: complex, 2: infinite, so only 1 is admissible
        assert select_min_eigenvalue(pairs) == 1


class TestModeB:

    def test_ignores_reported_eigenvalues(self):
        M = np.diag([5.0, 1.0])
        N = np.eye(2)
        # Reported eigenvalues claim column 0 is best; the true quotients disagree
        pairs = GeneralizedEigenpairs(
            alpha=np.array([0.0 + 0.0j, 9.0 + 0.0j]),
            beta=np.array([1.0, 1.0]),
            vectors=np.eye(2),
        )
        assert select_min_eigenvalue(pairs) == 0
        assert select_min_rayleigh(M, N, pairs) == 1

    def test_rayleigh_errors_with_zero_denominator(self):
        errs = rayleigh_errors(np.eye(2), np.diag([1.0, 0.0]), np.eye(2))
        assert errs[0] == pytest.approx(1.0)
        assert errs[1] == np.inf

    def test_non_finite_errors(self):
        M = np.diag([1.0, 3.0])
        # A NaN column never wins over a finite one
        pairs = GeneralizedEigenpairs(
            alpha=np.array([0.0 + 0.0j, 3.0 + 0.0j]),
            beta=np.array([1.0, 1.0]),
            vectors=np.array([[np.nan, 0.0], [np.nan, 1.0]]),
        )
        assert select_min_rayleigh(M, np.eye(2), pairs) == 1
        # With every quotient infinite the first column is returned
        pairs = pairs._replace(vectors=np.eye(2))
        assert np.all(np.isinf(rayleigh_errors(M, np.zeros((2, 2)), pairs.vectors)))
        assert select_min_rayleigh(M, np.zeros((2, 2)), pairs) == 0

    def test_agrees_with_mode_a_on_symmetric_pencil(self):
        rng = np.random.default_rng(1)
        A = rng.normal(size=(4, 4))
        M, N = A @ A.T, np.eye(4)
        a = unit(solve_best_fit(M, N))
        b = unit(solve_best_fit(M, N, recompute_errors=True))
        assert abs(a @ b) == pytest.approx(1.0)

    def test_complex_pencil_still_returns_vector(self):
        rotation = np.array([[0.0, -1.0], [1.0, 0.0]])
        assert solve_best_fit(rotation, np.eye(2), recompute_errors=True).shape == (2,)


class TestFailures:

    def test_zero_params(self):
        with pytest.raises(NoValidSolutionError):
            solve_best_fit(np.zeros((0, 0)), np.zeros((0, 0)))

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            solve_best_fit(np.eye(3), np.eye(2))

    def test_lapack_failure_propagates_info(self, monkeypatch):
        def failing_ggev(a, b, *args, **kwargs):
            n = a.shape[0]
            return (np.zeros(n), np.zeros(n), np.zeros(n), np.zeros((1, 1)),
                    np.zeros((n, n)), np.array([8.0]), 4)

        monkeypatch.setattr(eigensolver, "get_lapack_funcs", lambda names, arrays: (failing_ggev,))

        with pytest.raises(EigensolveFailedError) as excinfo:
            solve_best_fit(np.eye(3), np.eye(3))
        assert excinfo.value.info == 4
        assert excinfo.value.iteration is None
        assert "info=4" in str(excinfo.value)
