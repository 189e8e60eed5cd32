"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts. Fast math stays off
    so that infinities and NaN behave as in IEEE arithmetic.
    """
    ti.init(arch=ti.cpu, random_seed=42, fast_math=False)
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear every arena and the render target around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so that Taichi is initialized first
    from pathtracer.core.integrator import clear_render_target, disable_light, set_background
    from pathtracer.geometry.figures import clear_figures
    from pathtracer.materials.material import clear_materials
    from pathtracer.materials.texture import clear_textures
    from pathtracer.scene.intersection import clear_scene

    def _clear_all():
        clear_scene()
        clear_figures()
        clear_materials()
        clear_textures()
        clear_render_target()
        disable_light()
        set_background("sky")

    # Clear everything before test
    _clear_all()

    yield

    # Clear everything after test
    _clear_all()
