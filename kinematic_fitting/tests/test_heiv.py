"""Tests for HEIV reweighting and refinement."""
import logging

import numpy as np
import pytest

from kinematic_fitting import heiv
from kinematic_fitting.config import FitConfig
from kinematic_fitting.errors import EigensolveFailedError
from kinematic_fitting.fields import HelicalField, ScalingField, SpiralField, TranslationField
from kinematic_fitting.fitting import fit_kinematic_field, fit_kinematic_field_heiv
from kinematic_fitting.heiv import compute_heiv_weights, refine_heiv, residual_variance
from kinematic_fitting.linear_system import LinearSystemBuilder
from kinematic_fitting.samples import SurfaceSamples

from kinematic_fitting.tests.synthetic import (
    HELIX_AXIS,
    HELIX_PITCH,
    TRANSLATION_VELOCITY,
    helical_params,
)


def angle_deg(a, b):
    cos = abs(np.dot(a, b)) / (np.linalg.norm(a) * np.linalg.norm(b))
    return np.degrees(np.arccos(min(cos, 1.0)))


@pytest.fixture
def planar_samples():
    """Points in the z = 0 plane with normals along z."""
    positions = np.array([[0.1, 0, 0], [0.5, 0, 0], [1.0, 0, 0], [2.0, 0, 0], [0, 3.0, 0]])
    normals = np.tile([0.0, 0.0, 1.0], (5, 1))
    return SurfaceSamples(positions, normals, [1.0, 1.0, 1.0, 1.0, 0.0])


class TestWeights:

    def test_normal_noise_variance_is_tangential_speed(self, planar_samples):
        # v = p is tangent to the plane, so its whole length is tangential
        var = residual_variance(ScalingField, planar_samples, [0, 0, 0, 1.0], FitConfig())
        np.testing.assert_allclose(var, [0.01, 0.25, 1.0, 4.0, 9.0])

    def test_position_noise_uses_jacobian(self, helical_data):
        config = FitConfig(normal_noise=0.0, position_noise=2.0)
        x = helical_params()
        var = residual_variance(HelicalField, helical_data, x, config)
        expected = 4.0 * np.sum(np.cross(x[:3], helical_data.normals) ** 2, axis=1)
        np.testing.assert_allclose(var, expected, atol=1e-12)

    def test_faster_samples_get_smaller_weights(self, planar_samples):
        w = compute_heiv_weights(ScalingField, planar_samples, [0, 0, 0, 1.0], FitConfig())
        assert np.all(np.diff(w[:4]) < 0)
        assert w[:4].mean() == pytest.approx(1.0)
        assert w[4] == 0.0  # zero confidence stays excluded

    def test_weights_ignore_param_scale(self, helical_data):
        x = helical_params()
        w1 = compute_heiv_weights(HelicalField, helical_data, x, FitConfig())
        w2 = compute_heiv_weights(HelicalField, helical_data, -25.0 * x, FitConfig())
        np.testing.assert_allclose(w1, w2)

    def test_uniform_variance_keeps_confidence_weighting(self, translation_data):
        # Every normal is perpendicular to the true velocity, so each
        # residual variance is |t|^2
        confidence = np.random.default_rng(4).uniform(0.1, 3.0, len(translation_data))
        samples = SurfaceSamples(translation_data.positions, translation_data.normals, confidence)

        w = compute_heiv_weights(TranslationField, samples, TRANSLATION_VELOCITY, FitConfig())
        np.testing.assert_allclose(w, confidence / confidence.mean(), rtol=1e-9)

        # Reweighting only rescales the plain-fit system
        M_plain, N_plain = LinearSystemBuilder.build(TranslationField, samples)
        M_heiv, N_heiv = LinearSystemBuilder.build(TranslationField, samples, w)
        scale = confidence.mean() ** 2
        np.testing.assert_allclose(M_heiv * scale, M_plain, rtol=1e-9, atol=1e-12)
        np.testing.assert_allclose(N_heiv * scale, N_plain, rtol=1e-9)

    def test_vanishing_field_is_floored(self, planar_samples):
        w = compute_heiv_weights(TranslationField, planar_samples, np.zeros(3), FitConfig())
        assert np.all(np.isfinite(w))


class TestRefinement:

    def test_exact_data_converges_immediately(self, helical_data):
        result = fit_kinematic_field_heiv(HelicalField, helical_data)
        assert result.converged
        assert result.method == "heiv"
        assert result.residual < 1e-10
        assert angle_deg(result.describe().axis_direction, HELIX_AXIS) < 1e-4

    def test_recovers_helix_from_heteroscedastic_noise(self, noisy_helical_data):
        result = fit_kinematic_field_heiv(HelicalField, noisy_helical_data)
        motion = result.describe()
        assert angle_deg(motion.axis_direction, HELIX_AXIS) < 5.0
        assert motion.pitch == pytest.approx(HELIX_PITCH, rel=0.1)

    def test_residual_history_non_increasing(self, noisy_helical_data):
        for field in (HelicalField, SpiralField):
            result = fit_kinematic_field_heiv(field, noisy_helical_data)
            history = np.array(result.residual_history)
            assert len(history) >= 1
            assert np.all(np.diff(history) <= 1e-12)
            assert result.residual == pytest.approx(history[-1])

    def test_iteration_budget(self, noisy_helical_data, caplog):
        # A single iteration can never satisfy a zero tolerance
        config = FitConfig(max_iterations=1, tolerance=0.0)
        with caplog.at_level(logging.WARNING, logger="kinematic_fitting"):
            outcome = refine_heiv(HelicalField, noisy_helical_data, config)

        assert outcome.iterations == 1
        assert len(outcome.residual_history) == 1
        assert not outcome.converged
        assert "did not converge" in caplog.text

    def test_zero_iterations_returns_plain_fit(self, noisy_helical_data):
        plain = fit_kinematic_field(HelicalField, noisy_helical_data)
        outcome = refine_heiv(HelicalField, noisy_helical_data, FitConfig(max_iterations=0))
        np.testing.assert_array_equal(outcome.params, plain.params)
        assert outcome.iterations == 0
        assert outcome.residual_history == []

    def test_deterministic(self, noisy_helical_data):
        a = fit_kinematic_field_heiv(SpiralField, noisy_helical_data)
        b = fit_kinematic_field_heiv(SpiralField, noisy_helical_data)
        np.testing.assert_array_equal(a.params, b.params)


class TestSolverFailure:

    def _fail_on_call(self, monkeypatch, fail_at):
        real = heiv.solve_best_fit
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) == fail_at:
                raise EigensolveFailedError(7)
            return real(*args, **kwargs)

        monkeypatch.setattr(heiv, "solve_best_fit", flaky)

    def test_failure_in_initial_fit(self, monkeypatch, noisy_helical_data):
        self._fail_on_call(monkeypatch, 1)
        with pytest.raises(EigensolveFailedError) as excinfo:
            refine_heiv(HelicalField, noisy_helical_data)
        assert excinfo.value.iteration == 0
        assert excinfo.value.info == 7

    def test_failure_annotated_with_iteration(self, monkeypatch, noisy_helical_data):
        self._fail_on_call(monkeypatch, 2)
        with pytest.raises(EigensolveFailedError, match="HEIV iteration 1") as excinfo:
            refine_heiv(HelicalField, noisy_helical_data)
        assert excinfo.value.iteration == 1
        assert excinfo.value.info == 7
