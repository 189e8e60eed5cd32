"""Unit tests for the unified material registry and dispatch."""

import math

import pytest
import taichi as ti


def _hit_record():
    """A hit at the origin on a surface facing +Y, for use inside kernels."""
    from pathtracer.geometry.figures import SceneHitRecord

    @ti.func
    def make():
        return SceneHitRecord(
            hit=1,
            t=1.0,
            point=ti.math.vec3(0.0, 0.0, 0.0),
            normal=ti.math.vec3(0.0, 1.0, 0.0),
            u=0.5,
            v=0.5,
            material_id=0,
        )

    return make


def _scatter(material_id, direction=(0.0, -1.0, 0.0)):
    """Return (is_scattered, is_specular, attenuation, pdf_normal)."""
    from pathtracer.materials.material import scatter

    make_record = _hit_record()
    flags = ti.field(dtype=ti.i32, shape=2)
    att = ti.Vector.field(3, dtype=ti.f32, shape=())
    pdf_normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(m: ti.i32):
        srec = scatter(m, ti.math.vec3(direction[0], direction[1], direction[2]), make_record())
        flags[0] = srec.is_scattered
        flags[1] = srec.is_specular
        att[None] = srec.attenuation
        pdf_normal[None] = srec.pdf_normal

    test_kernel(material_id)
    return flags[0], flags[1], att[None], pdf_normal[None]


def _emitted(material_id):
    from pathtracer.materials.material import emitted

    out = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(m: ti.i32):
        out[None] = emitted(m, 0.5, 0.5, ti.math.vec3(0.0, 0.0, 0.0))

    test_kernel(material_id)
    return out[None]


class TestRegistry:
    def test_register_assigns_sequential_ids(self):
        from pathtracer.materials.material import (
            MaterialType,
            get_material_count,
            register_material,
        )
        from pathtracer.materials.metal import add_metal_material

        a = register_material(MaterialType.METAL, add_metal_material((0.5, 0.5, 0.5)))
        b = register_material(MaterialType.METAL, add_metal_material((0.5, 0.5, 0.5)))
        assert (a, b) == (0, 1)
        assert get_material_count() == 2

    def test_clear_resets_every_registry(self):
        from pathtracer.materials.dielectric import (
            add_dielectric_material,
            get_dielectric_material_count,
        )
        from pathtracer.materials.material import (
            MaterialType,
            clear_materials,
            get_material_count,
            register_material,
        )

        register_material(MaterialType.DIELECTRIC, add_dielectric_material(1.5))
        clear_materials()
        assert get_material_count() == 0
        assert get_dielectric_material_count() == 0


class TestDispatch:
    def test_lambertian_is_diffuse(self):
        from pathtracer.materials.lambertian import add_lambertian_material
        from pathtracer.materials.material import MaterialType, register_material
        from pathtracer.materials.texture import add_solid_texture

        mid = register_material(
            MaterialType.LAMBERTIAN, add_lambertian_material(add_solid_texture((0.5, 0.5, 0.5)))
        )
        scattered, specular, att, normal = _scatter(mid)
        assert scattered == 1
        assert specular == 0
        assert abs(att[0] - 0.5) < 1e-6
        assert abs(normal[1] - 1.0) < 1e-6

    def test_metal_and_dielectric_are_specular(self):
        from pathtracer.materials.dielectric import add_dielectric_material
        from pathtracer.materials.material import MaterialType, register_material
        from pathtracer.materials.metal import add_metal_material

        metal = register_material(MaterialType.METAL, add_metal_material((0.8, 0.8, 0.8)))
        glass = register_material(MaterialType.DIELECTRIC, add_dielectric_material(1.5))
        for mid in (metal, glass):
            scattered, specular, _, _ = _scatter(mid)
            assert scattered == 1
            assert specular == 1

    def test_diffuse_light_absorbs_and_emits(self):
        from pathtracer.materials.diffuse_light import add_diffuse_light_material
        from pathtracer.materials.material import MaterialType, register_material
        from pathtracer.materials.texture import add_solid_texture

        mid = register_material(
            MaterialType.DIFFUSE_LIGHT, add_diffuse_light_material(add_solid_texture((4.0, 4.0, 4.0)))
        )
        scattered, _, _, _ = _scatter(mid)
        assert scattered == 0
        e = _emitted(mid)
        assert abs(e[0] - 4.0) < 1e-6

    def test_non_lights_emit_black(self):
        from pathtracer.materials.material import MaterialType, register_material
        from pathtracer.materials.metal import add_metal_material

        mid = register_material(MaterialType.METAL, add_metal_material((0.8, 0.8, 0.8)))
        e = _emitted(mid)
        assert e[0] == 0.0 and e[1] == 0.0 and e[2] == 0.0

    def test_isotropic_scatters_any_direction(self):
        from pathtracer.materials.isotropic import add_isotropic_material
        from pathtracer.materials.material import MaterialType, register_material
        from pathtracer.materials.texture import add_solid_texture

        mid = register_material(
            MaterialType.ISOTROPIC, add_isotropic_material(add_solid_texture((0.3, 0.3, 0.3)))
        )
        scattered, specular, att, _ = _scatter(mid)
        assert scattered == 1
        assert specular == 1
        assert abs(att[0] - 0.3) < 1e-6

    def test_unknown_material_absorbs(self):
        scattered, _, _, _ = _scatter(17)
        assert scattered == 0
        e = _emitted(-1)
        assert e[0] == 0.0

    def test_scattering_pdf_only_for_lambertian(self):
        from pathtracer.materials.lambertian import add_lambertian_material
        from pathtracer.materials.material import MaterialType, register_material, scattering_pdf
        from pathtracer.materials.metal import add_metal_material
        from pathtracer.materials.texture import add_solid_texture

        diffuse = register_material(
            MaterialType.LAMBERTIAN, add_lambertian_material(add_solid_texture((0.5, 0.5, 0.5)))
        )
        metal = register_material(MaterialType.METAL, add_metal_material((0.8, 0.8, 0.8)))
        out = ti.field(dtype=ti.f32, shape=2)
        make_record = _hit_record()

        @ti.kernel
        def test_kernel(a: ti.i32, b: ti.i32):
            rec = make_record()
            up = ti.math.vec3(0.0, 1.0, 0.0)
            down = ti.math.vec3(0.0, -1.0, 0.0)
            out[0] = scattering_pdf(a, down, rec, up)
            out[1] = scattering_pdf(b, down, rec, up)

        test_kernel(diffuse, metal)
        assert abs(out[0] - 1.0 / math.pi) < 1e-6
        assert out[1] == 0.0


class TestLightAndMediumRegistries:
    def test_diffuse_light_unknown_texture(self):
        from pathtracer.materials.diffuse_light import add_diffuse_light_material

        with pytest.raises(ValueError):
            add_diffuse_light_material(0)

    def test_isotropic_unknown_texture(self):
        from pathtracer.materials.isotropic import add_isotropic_material

        with pytest.raises(ValueError):
            add_isotropic_material(3)
