"""Unit tests for solid, checker and noise textures."""

import numpy as np
import pytest
import taichi as ti


def _sample(texture_id, points):
    from pathtracer.materials.texture import texture_value

    n = len(points)
    pts = ti.Vector.field(3, dtype=ti.f32, shape=n)
    out = ti.Vector.field(3, dtype=ti.f32, shape=n)
    pts.from_numpy(np.asarray(points, dtype=np.float32))

    @ti.kernel
    def test_kernel(tex: ti.i32):
        for i in range(n):
            out[i] = texture_value(tex, 0.0, 0.0, pts[i])

    test_kernel(texture_id)
    return out.to_numpy()


class TestSolidTexture:
    def test_constant_everywhere(self):
        from pathtracer.materials.texture import add_solid_texture

        tex = add_solid_texture((0.1, 0.2, 0.3))
        values = _sample(tex, [(0.0, 0.0, 0.0), (5.0, -3.0, 100.0)])
        np.testing.assert_allclose(values, [[0.1, 0.2, 0.3]] * 2, atol=1e-6)

    def test_emitter_colors_above_one_allowed(self):
        from pathtracer.materials.texture import add_solid_texture

        tex = add_solid_texture((15.0, 15.0, 15.0))
        assert _sample(tex, [(0.0, 0.0, 0.0)])[0, 0] == pytest.approx(15.0)

    def test_negative_component_rejected(self):
        from pathtracer.materials.texture import add_solid_texture

        with pytest.raises(ValueError):
            add_solid_texture((0.1, -0.2, 0.3))

    def test_wrong_length_rejected(self):
        from pathtracer.materials.texture import add_solid_texture

        with pytest.raises(ValueError):
            add_solid_texture((0.1, 0.2))


class TestCheckerTexture:
    def test_sign_of_sine_product_selects_color(self):
        from pathtracer.materials.texture import add_checker_texture

        tex = add_checker_texture((1.0, 0.0, 0.0), (0.0, 0.0, 1.0))
        # sin(1)^3 > 0 at (0.1, 0.1, 0.1); flipping x makes the product negative
        values = _sample(tex, [(0.1, 0.1, 0.1), (-0.1, 0.1, 0.1)])
        np.testing.assert_allclose(values[0], (0.0, 0.0, 1.0))
        np.testing.assert_allclose(values[1], (1.0, 0.0, 0.0))


class TestNoiseTexture:
    def test_values_in_unit_range_and_grey(self):
        from pathtracer.materials.texture import add_noise_texture

        tex = add_noise_texture(4.0)
        rng = np.random.default_rng(2)
        values = _sample(tex, rng.uniform(-50.0, 50.0, size=(500, 3)))
        assert values.min() >= 0.0
        assert values.max() < 1.0
        np.testing.assert_allclose(values[:, 0], values[:, 1])
        assert values[:, 0].std() > 0.05

    def test_negative_coordinates_wrap(self):
        """Lattice indices wrap, so negative positions are valid."""
        from pathtracer.materials.texture import add_noise_texture

        tex = add_noise_texture(1.0)
        values = _sample(tex, [(-1000.5, -3.25, -7.75)])
        assert 0.0 <= values[0, 0] < 1.0

    def test_same_seed_same_noise(self):
        from pathtracer.materials.texture import add_noise_texture, init_perlin

        init_perlin(7)
        tex = add_noise_texture(2.0)
        points = [(0.3, 1.7, -2.2), (4.1, 0.0, 9.9)]
        first = _sample(tex, points)
        init_perlin(7)
        np.testing.assert_allclose(_sample(tex, points), first)

    def test_scale_must_be_positive(self):
        from pathtracer.materials.texture import add_noise_texture

        with pytest.raises(ValueError):
            add_noise_texture(0.0)


class TestTextureRegistry:
    def test_unknown_texture_is_black(self):
        values = _sample(3, [(0.0, 0.0, 0.0)])
        np.testing.assert_allclose(values, 0.0)

    def test_clear_resets_count(self):
        from pathtracer.materials.texture import add_solid_texture, clear_textures, get_texture_count

        add_solid_texture((0.5, 0.5, 0.5))
        assert get_texture_count() == 1
        clear_textures()
        assert get_texture_count() == 0
