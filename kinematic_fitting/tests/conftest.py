"""Shared fixtures for the kinematic_fitting test suite."""

import logging

import matplotlib
matplotlib.use("Agg")

import pytest
import trimesh

from kinematic_fitting.tests.synthetic import (
    heteroscedastic_noise,
    helical_sphere_samples,
    translation_samples,
)


@pytest.fixture
def translation_data():
    return translation_samples()


@pytest.fixture
def helical_data():
    return helical_sphere_samples()


@pytest.fixture
def noisy_helical_data():
    return helical_sphere_samples(noise=heteroscedastic_noise, seed=1)


@pytest.fixture
def sphere_obj(tmp_path):
    """Path to an icosphere saved as OBJ."""
    path = tmp_path / "sphere.obj"
    mesh = trimesh.creation.icosphere(subdivisions=2)
    path.write_text(trimesh.exchange.obj.export_obj(mesh, include_normals=False, include_texture=False))
    return str(path)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by setup_logging() so they don't outlive capsys."""
    yield
    logger = logging.getLogger("kinematic_fitting")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
