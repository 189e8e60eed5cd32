"""Tests for the path tracing integrator.

This module tests the core path tracing functionality including:
- Render target setup and management
- Background radiance
- Material paths with known closed-form answers
- Light sampling leaving the estimate unbiased
- Sanitizing of NaN and infinite samples
- Progressive accumulation and convergence

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run, so module-level
imports of modules containing ti.field() declarations would fail.
"""

import numpy as np
import pytest
import taichi as ti


def _look_down_z(vfov=1.0, aspect_ratio=1.0):
    from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera

    setup_camera(
        ThinLensCamera(
            lookfrom=(0.0, 0.0, 0.0),
            lookat=(0.0, 0.0, -1.0),
            vup=(0.0, 1.0, 0.0),
            vfov=vfov,
            aspect_ratio=aspect_ratio,
        )
    )


class TestRenderTargetSetup:
    """Test render target initialization and management."""

    def test_setup_sets_dimensions(self):
        from pathtracer.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(64, 48)
        assert get_image_dimensions() == (64, 48)

    def test_non_positive_dimensions_rejected(self):
        from pathtracer.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(0, 10)

    def test_oversized_dimensions_rejected(self):
        from pathtracer.core.integrator import MAX_IMAGE_WIDTH, setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(MAX_IMAGE_WIDTH + 1, 10)

    def test_setup_clears_previous_samples(self):
        from pathtracer.core.integrator import get_total_samples, render_image, setup_render_target

        _look_down_z()
        setup_render_target(4, 4)
        render_image(3)
        assert get_total_samples() == 3
        setup_render_target(4, 4)
        assert get_total_samples() == 0

    def test_linear_image_shape(self):
        from pathtracer.core.integrator import get_linear_image_numpy, setup_render_target

        setup_render_target(7, 5)
        image = get_linear_image_numpy()
        assert image.shape == (5, 7, 3)
        assert image.dtype == np.float32


class TestRenderTargetErrors:
    """Test error handling for render target operations."""

    def test_render_sample_without_setup_raises_error(self):
        import pathtracer.core.integrator as integrator
        from pathtracer.core.integrator import render_sample

        original_value = integrator._render_target_initialized[None]
        integrator._render_target_initialized[None] = 0

        with pytest.raises(RuntimeError, match="Render target not set up"):
            render_sample(0, 0)

        integrator._render_target_initialized[None] = original_value

    def test_render_image_without_setup_raises_error(self):
        import pathtracer.core.integrator as integrator
        from pathtracer.core.integrator import render_image

        original_value = integrator._render_target_initialized[None]
        integrator._render_target_initialized[None] = 0

        with pytest.raises(RuntimeError, match="Render target not set up"):
            render_image(1)

        integrator._render_target_initialized[None] = original_value


class TestBackground:
    def test_sky_at_horizon(self):
        """An empty scene shows the sky; a horizontal ray sees its midpoint."""
        from pathtracer.core.integrator import render_sample, setup_render_target

        _look_down_z(vfov=0.5)
        setup_render_target(1, 1)
        r, g, b = render_sample(0, 0)
        assert r == pytest.approx(0.75, abs=0.01)
        assert g == pytest.approx(0.85, abs=0.01)
        assert b == pytest.approx(1.0, abs=0.01)

    def test_constant_color(self):
        from pathtracer.core.integrator import render_sample, set_background, setup_render_target

        set_background((0.2, 0.3, 0.4))
        _look_down_z()
        setup_render_target(1, 1)
        assert render_sample(0, 0) == pytest.approx((0.2, 0.3, 0.4), abs=1e-6)

    def test_black(self):
        from pathtracer.core.integrator import render_sample, set_background, setup_render_target

        set_background("black")
        _look_down_z()
        setup_render_target(1, 1)
        assert render_sample(0, 0) == (0.0, 0.0, 0.0)

    def test_unknown_name_rejected(self):
        from pathtracer.core.integrator import set_background

        with pytest.raises(ValueError):
            set_background("night")

    def test_negative_color_rejected(self):
        from pathtracer.core.integrator import set_background

        with pytest.raises(ValueError):
            set_background((0.1, -0.1, 0.1))


class TestMaterialPaths:
    """Paths whose radiance is known exactly."""

    def test_emitter_returns_its_emission(self):
        """A camera inside an emitting sphere sees the emission from the back side."""
        from pathtracer.core.integrator import render_sample, setup_render_target
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager(background="black")
        lamp = scene.add_diffuse_light_material(color=(2.0, 3.0, 4.0))
        scene.add_sphere((0.0, 0.0, 0.0), 10.0, lamp)
        scene.build()

        _look_down_z(vfov=60.0)
        setup_render_target(1, 1)
        assert render_sample(0, 0) == pytest.approx((2.0, 3.0, 4.0), abs=1e-5)

    def test_diffuse_sphere_under_uniform_sky(self):
        """Without light sampling the cosine PDF cancels, leaving albedo * background."""
        from pathtracer.core.integrator import render_sample, setup_render_target
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager(background=(1.0, 1.0, 1.0))
        grey = scene.add_lambertian_material(albedo=(0.5, 0.25, 0.125))
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, grey)
        scene.build()

        _look_down_z()
        setup_render_target(1, 1)
        for _ in range(5):
            assert render_sample(0, 0) == pytest.approx((0.5, 0.25, 0.125), abs=1e-4)

    def test_light_sampling_is_unbiased(self):
        """Mixing in a light PDF changes the variance but not the mean."""
        from pathtracer.core.integrator import get_linear_image_numpy, render_image, setup_render_target
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager(background=(1.0, 1.0, 1.0))
        grey = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, grey)
        scene.set_light_shape(scene.xz_rect(-2.0, 2.0, -5.0, -1.0, 3.0))
        scene.build()

        _look_down_z(vfov=5.0)
        setup_render_target(8, 8)
        render_image(64)
        image = get_linear_image_numpy()
        assert abs(image.mean() - 0.5) < 0.03

    def test_mirror_sphere_tints_background(self):
        from pathtracer.core.integrator import render_sample, setup_render_target
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager(background=(0.5, 0.5, 0.5))
        chrome = scene.add_metal_material((0.8, 0.6, 0.4), fuzz=0.0)
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, chrome)
        scene.build()

        _look_down_z()
        setup_render_target(1, 1)
        assert render_sample(0, 0) == pytest.approx((0.4, 0.3, 0.2), abs=1e-5)

    def test_index_matched_glass_is_invisible(self):
        from pathtracer.core.integrator import render_sample, setup_render_target
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager(background=(0.3, 0.6, 0.9))
        glass = scene.add_dielectric_material(1.0)
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, glass)
        scene.build()

        _look_down_z()
        setup_render_target(1, 1)
        assert render_sample(0, 0) == pytest.approx((0.3, 0.6, 0.9), abs=1e-4)

    def test_closed_mirror_box_terminates_black(self):
        """Paths that never escape stop at the depth limit with no light gathered."""
        from pathtracer.core.integrator import render_sample, setup_render_target
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager(background=(1.0, 1.0, 1.0))
        mirror = scene.add_metal_material((1.0, 1.0, 1.0), fuzz=0.0)
        box = scene.flip_normals(scene.cuboid((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0)))
        scene.add_object(box, mirror)
        scene.build()

        _look_down_z(vfov=30.0)
        setup_render_target(1, 1)
        assert render_sample(0, 0) == (0.0, 0.0, 0.0)


class TestSanitize:
    def test_bad_channels_zeroed(self):
        from pathtracer.core.integrator import sanitize_radiance

        out = ti.Vector.field(3, dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel(nan: ti.f32, inf: ti.f32):
            out[0] = sanitize_radiance(ti.math.vec3(nan, 0.5, inf))
            out[1] = sanitize_radiance(ti.math.vec3(-inf, -0.25, 2.0))

        test_kernel(float("nan"), float("inf"))
        a = out[0]
        b = out[1]
        assert (a[0], a[1], a[2]) == (0.0, 0.5, 0.0)
        assert (b[0], b[1], b[2]) == (0.0, 0.0, 2.0)

    def test_cornell_box_has_no_bad_values(self):
        from pathtracer.camera.thin_lens import setup_camera
        from pathtracer.core.integrator import get_linear_image_numpy, render_image, setup_render_target
        from pathtracer.scene.cornell_box import create_cornell_box_scene

        _, camera = create_cornell_box_scene()
        setup_camera(camera)
        setup_render_target(16, 16)
        render_image(4)
        image = get_linear_image_numpy()
        assert np.isfinite(image).all()
        assert (image >= 0.0).all()
        assert image.max() > 0.0


class TestAccumulation:
    def test_sample_count_increments(self):
        from pathtracer.core.integrator import get_total_samples, render_image, setup_render_target

        _look_down_z()
        setup_render_target(2, 2)
        render_image(2)
        render_image(3)
        assert get_total_samples() == 5

    def test_top_row_first(self):
        """In the sky spheres scene the sky fills the top and the ground the bottom."""
        from pathtracer.camera.thin_lens import setup_camera
        from pathtracer.core.integrator import get_linear_image_numpy, render_image, setup_render_target
        from pathtracer.scene.cornell_box import create_sky_spheres_scene

        _, camera = create_sky_spheres_scene(aspect_ratio=2.0)
        setup_camera(camera)
        setup_render_target(16, 8)
        render_image(8)
        image = get_linear_image_numpy()
        assert image[0].mean() > image[-1].mean()

    def test_more_samples_converge(self):
        from pathtracer.camera.thin_lens import setup_camera
        from pathtracer.core.integrator import get_linear_image_numpy, render_image, setup_render_target
        from pathtracer.preview.export import compute_rmse
        from pathtracer.scene.cornell_box import create_sky_spheres_scene

        _, camera = create_sky_spheres_scene(aspect_ratio=2.0)
        setup_camera(camera)

        setup_render_target(16, 8)
        render_image(1024)
        reference = get_linear_image_numpy()

        setup_render_target(16, 8)
        render_image(16)
        coarse = get_linear_image_numpy()
        render_image(240)
        fine = get_linear_image_numpy()

        assert compute_rmse(fine, reference) < compute_rmse(coarse, reference)

    def test_save_image(self, tmp_path):
        from PIL import Image

        from pathtracer.core.integrator import render_image, save_image, setup_render_target

        _look_down_z()
        setup_render_target(6, 4)
        render_image(1)
        path = tmp_path / "out.png"
        save_image(str(path))
        with Image.open(path) as img:
            assert img.size == (6, 4)
            assert img.mode == "RGB"
