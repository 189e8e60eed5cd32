"""Direction-sampling PDFs for importance sampling.

A Pdf couples a way of drawing directions with the density of that
drawing:

- COSINE: cosine-weighted directions about a normal, density
  ``max(0, cos(theta)) / pi``
- HIT: directions from an origin toward a light figure, density given by
  the figure's solid-angle sampling (``figure_pdf_value``)

The equal-weight mixture of two Pdfs, which combines material sampling with
light sampling, is expressed by ``mix_pdf_value`` and ``mix_pdf_generate``.

Example:
    >>> # Inside a Taichi function:
    >>> # p = mix of make_hit_pdf(light, point) and make_cosine_pdf(normal)
    >>> # direction = mix_pdf_generate(light_pdf, surface_pdf)
    >>> # density = mix_pdf_value(light_pdf, surface_pdf, direction)
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import (
    build_onb_from_normal,
    local_to_world,
    random_cosine_direction,
)
from pathtracer.geometry.figures import figure_pdf_value, figure_random
from pathtracer.materials.material import ScatterRecord

vec3 = tm.vec3


class PdfKind(IntEnum):
    """Tag of a Pdf."""

    COSINE = 0
    HIT = 1


@ti.dataclass
class Pdf:
    """A direction distribution.

    Attributes:
        kind: PdfKind tag.
        u: First tangent of the basis (COSINE).
        v: Second tangent of the basis (COSINE).
        w: Basis axis, the normal (COSINE).
        figure: Figure node sampled toward (HIT).
        origin: Point sampled from (HIT).
    """

    kind: ti.i32
    u: vec3
    v: vec3
    w: vec3
    figure: ti.i32
    origin: vec3


@ti.func
def make_cosine_pdf(normal: vec3) -> Pdf:
    """Cosine-weighted Pdf about ``normal``."""
    u, v, w = build_onb_from_normal(normal)
    return Pdf(kind=int(PdfKind.COSINE), u=u, v=v, w=w, figure=-1)


@ti.func
def make_hit_pdf(figure: ti.i32, origin: vec3) -> Pdf:
    """Pdf of directions from ``origin`` toward the figure ``figure``."""
    return Pdf(kind=int(PdfKind.HIT), figure=figure, origin=origin)


@ti.func
def scatter_pdf(srec: ScatterRecord) -> Pdf:
    """The cosine Pdf a diffuse ScatterRecord asks to be sampled."""
    return make_cosine_pdf(srec.pdf_normal)


@ti.func
def pdf_value(p: Pdf, direction: vec3) -> ti.f32:
    """Density with which ``p`` generates ``direction``."""
    value = 0.0
    if p.kind == int(PdfKind.COSINE):
        cosine = tm.dot(tm.normalize(direction), p.w)
        if cosine > 0.0:
            value = cosine / tm.pi
    elif p.kind == int(PdfKind.HIT):
        value = figure_pdf_value(p.figure, p.origin, direction)
    return value


@ti.func
def pdf_generate(p: Pdf) -> vec3:
    """Draw a direction from ``p``."""
    result = vec3(1.0, 0.0, 0.0)
    if p.kind == int(PdfKind.COSINE):
        result = local_to_world(random_cosine_direction(), p.u, p.v, p.w)
    elif p.kind == int(PdfKind.HIT):
        result = figure_random(p.figure, p.origin)
    return result


@ti.func
def mix_pdf_value(p0: Pdf, p1: Pdf, direction: vec3) -> ti.f32:
    """Density of the 50/50 mixture of ``p0`` and ``p1``."""
    return 0.5 * pdf_value(p0, direction) + 0.5 * pdf_value(p1, direction)


@ti.func
def mix_pdf_generate(p0: Pdf, p1: Pdf) -> vec3:
    """Draw from ``p0`` or ``p1`` with equal probability."""
    result = vec3(0.0, 0.0, 0.0)
    if ti.random(ti.f32) < 0.5:
        result = pdf_generate(p0)
    else:
        result = pdf_generate(p1)
    return result
