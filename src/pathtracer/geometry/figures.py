"""Figure arena: the tree of primitives, wrappers and groups.

Every figure is a node in a set of Structure-of-Arrays Taichi fields and is
referred to by its integer node id. Leaves (spheres and the three
rectangle orientations) carry geometry. Wrappers (FlipNormals, Translate,
RotateY, ConstantMedium) own one child. Groups and cuboids list their
children in ``figure_child_refs``. BVH nodes own two children and a cached
box.

Kernels cannot recurse, so ``hit_figure`` walks the tree with a small local
stack. Each stack entry carries the transform accumulated from the wrappers
above it: a rotation about Y (stored as cos/sin), an offset applied after
the rotation, and a normal sign. A world point ``x`` maps to the node's
local frame as ``rotate_y_inverse(x) + offset``; hit points and normals
are mapped back before they are compared, so the ray parameter ``t`` is
the same in every frame.

Host code keeps a ``FigureInfo`` per node with the node's bounding box and
children, used for BVH construction and validation.

Example:
    >>> from pathtracer.geometry import figures
    >>> figures.clear_figures()
    >>> box = figures.add_cuboid((0, 0, 0), (165, 330, 165))
    >>> box = figures.add_rotate_y(box, 15.0)
    >>> box = figures.add_translate(box, (265, 0, 295))
    >>> figures.bounding_box(box).min[1]
    0.0
"""

import logging
import math
from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import (
    INF,
    rotate_y_forward,
    rotate_y_inverse,
)
from pathtracer.geometry.aabb import Aabb, hit_aabb
from pathtracer.geometry.rect import (
    XY,
    XZ,
    YZ,
    hit_rect,
    rect_bounding_box,
    rect_corners,
    rect_pdf_value,
    rect_random,
)
from pathtracer.geometry.sphere import (
    HitRecord,
    hit_sphere,
    sphere_bounding_box,
    sphere_pdf_value,
    sphere_random,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class FigureKind(IntEnum):
    """Tag of a figure arena node."""

    SPHERE = 0
    XY_RECT = 1
    YZ_RECT = 2
    XZ_RECT = 3
    FLIP_NORMALS = 4
    TRANSLATE = 5
    ROTATE_Y = 6
    CONSTANT_MEDIUM = 7
    GROUP = 8
    CUBOID = 9
    BVH_NODE = 10


_RECT_KINDS = {XY: FigureKind.XY_RECT, YZ: FigureKind.YZ_RECT, XZ: FigureKind.XZ_RECT}

# Arena capacities
MAX_FIGURES = 8192
MAX_CHILD_REFS = 8192

# Local traversal stack depth per ray
STACK_SIZE = 64

# Offset past the entry hit when searching for a medium's exit
MEDIUM_EXIT_EPSILON = 1e-4

# =============================================================================
# Arena storage
# =============================================================================

figure_kinds = ti.field(dtype=ti.i32, shape=MAX_FIGURES)
# Material override for the subtree, -1 inherits from the parent
figure_materials = ti.field(dtype=ti.i32, shape=MAX_FIGURES)
# Single child, or first child_refs slot for groups and cuboids
figure_child = ti.field(dtype=ti.i32, shape=MAX_FIGURES)
# Second child for BVH nodes, child count for groups and cuboids
figure_child2 = ti.field(dtype=ti.i32, shape=MAX_FIGURES)
# Sphere center, rectangle low corner, translation offset
figure_p0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_FIGURES)
# Rectangle high corner
figure_p1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_FIGURES)
# Sphere radius, rotation cosine, medium density
figure_s0 = ti.field(dtype=ti.f32, shape=MAX_FIGURES)
# Rotation sine
figure_s1 = ti.field(dtype=ti.f32, shape=MAX_FIGURES)
figure_bbox_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_FIGURES)
figure_bbox_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_FIGURES)
figure_child_refs = ti.field(dtype=ti.i32, shape=MAX_CHILD_REFS)
num_figures = ti.field(dtype=ti.i32, shape=())
num_child_refs = ti.field(dtype=ti.i32, shape=())


@dataclass
class FigureInfo:
    """Host-side record of an arena node.

    Attributes:
        kind: The node's FigureKind.
        bbox: The node's bounding box, or None when it has none (groups).
        children: Node ids of the direct children.
        has_medium: Whether a ConstantMedium occurs in this subtree.
        stack_depth: Traversal stack entries needed to search the subtree.
    """

    kind: FigureKind
    bbox: Aabb | None
    children: tuple[int, ...] = ()
    has_medium: bool = False
    stack_depth: int = 1


_figure_infos: list[FigureInfo] = []


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-figure intersection with material information.

    Attributes:
        hit: Whether the ray intersected the figure (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: World-space hit point.
        normal: World-space surface normal.
        u: First surface coordinate.
        v: Second surface coordinate.
        material_id: Material of the nearest enclosing node that sets one,
            -1 if none does.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32
    material_id: ti.i32


def clear_figures() -> None:
    """Remove every node from the arena."""
    num_figures[None] = 0
    num_child_refs[None] = 0
    _figure_infos.clear()


def get_figure_count() -> int:
    return len(_figure_infos)


def get_figure_info(node: int) -> FigureInfo:
    """Return the host record of a node.

    Raises:
        ValueError: If the node id does not exist.
    """
    if not 0 <= node < len(_figure_infos):
        raise ValueError(f"Unknown figure id: {node}")
    return _figure_infos[node]


def bounding_box(node: int, t0: float = 0.0, t1: float = 1.0) -> Aabb | None:
    """Return the bounding box of a node over the shutter interval [t0, t1].

    Figures do not move, so the interval does not affect the result. Groups
    have no box and return None.
    """
    return get_figure_info(node).bbox


def check_stack_depth(node: int) -> None:
    """Check that a tree can be searched within the kernel stack.

    Wrappers reuse their parent's stack entry, groups and cuboids hold one
    entry while their children are searched, and a BVH node holds one entry
    for its right child while the left one is searched.

    Raises:
        ValueError: If the node does not exist or its tree needs more than
            STACK_SIZE entries.
    """
    depth = get_figure_info(node).stack_depth
    if depth > STACK_SIZE:
        raise ValueError(
            f"Figure {node} needs {depth} traversal stack entries, at most "
            f"{STACK_SIZE} are available; flatten nested groups or use a BVH"
        )


def _alloc_node(kind: FigureKind, info: FigureInfo) -> int:
    idx = num_figures[None]
    if idx >= MAX_FIGURES:
        raise RuntimeError(f"Maximum number of figures ({MAX_FIGURES}) exceeded")
    figure_kinds[idx] = int(kind)
    figure_materials[idx] = -1
    figure_child[idx] = -1
    figure_child2[idx] = -1
    figure_p0[idx] = (0.0, 0.0, 0.0)
    figure_p1[idx] = (0.0, 0.0, 0.0)
    figure_s0[idx] = 0.0
    figure_s1[idx] = 0.0
    bbox = info.bbox
    if bbox is None:
        figure_bbox_min[idx] = (-INF, -INF, -INF)
        figure_bbox_max[idx] = (INF, INF, INF)
    else:
        figure_bbox_min[idx] = bbox.min
        figure_bbox_max[idx] = bbox.max
    num_figures[None] = idx + 1
    _figure_infos.append(info)
    return idx


def _alloc_child_refs(children) -> int:
    start = num_child_refs[None]
    if start + len(children) > MAX_CHILD_REFS:
        raise RuntimeError(
            f"Maximum number of group children ({MAX_CHILD_REFS}) exceeded"
        )
    for i, child in enumerate(children):
        figure_child_refs[start + i] = child
    num_child_refs[None] = start + len(children)
    return start


def set_figure_material(node: int, material_id: int) -> None:
    """Attach a material to a node; descendants without one inherit it."""
    get_figure_info(node)
    figure_materials[node] = material_id


# =============================================================================
# Leaf constructors
# =============================================================================


def add_sphere(center: tuple[float, float, float], radius: float) -> int:
    """Add a sphere leaf.

    Raises:
        ValueError: If the radius is not positive.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")
    idx = _alloc_node(
        FigureKind.SPHERE,
        FigureInfo(FigureKind.SPHERE, sphere_bounding_box(center, radius)),
    )
    figure_p0[idx] = center
    figure_s0[idx] = radius
    return idx


def add_rect(axis: int, a0: float, a1: float, b0: float, b1: float, k: float) -> int:
    """Add an axis-aligned rectangle leaf with its normal along ``axis``."""
    lo, hi = rect_corners(axis, a0, a1, b0, b1, k)
    kind = _RECT_KINDS[axis]
    idx = _alloc_node(kind, FigureInfo(kind, rect_bounding_box(axis, lo, hi)))
    figure_p0[idx] = lo
    figure_p1[idx] = hi
    return idx


def add_xy_rect(x0: float, x1: float, y0: float, y1: float, k: float) -> int:
    """Add a rectangle in the plane z = k."""
    return add_rect(XY, x0, x1, y0, y1, k)


def add_yz_rect(y0: float, y1: float, z0: float, z1: float, k: float) -> int:
    """Add a rectangle in the plane x = k."""
    return add_rect(YZ, y0, y1, z0, z1, k)


def add_xz_rect(x0: float, x1: float, z0: float, z1: float, k: float) -> int:
    """Add a rectangle in the plane y = k."""
    return add_rect(XZ, x0, x1, z0, z1, k)


# =============================================================================
# Wrapper and composite constructors
# =============================================================================


def add_flip_normals(child: int) -> int:
    """Wrap a figure so that its normals point the other way."""
    info = get_figure_info(child)
    idx = _alloc_node(
        FigureKind.FLIP_NORMALS,
        FigureInfo(
            FigureKind.FLIP_NORMALS, info.bbox, (child,), info.has_medium, info.stack_depth
        ),
    )
    figure_child[idx] = child
    return idx


def add_translate(child: int, offset: tuple[float, float, float]) -> int:
    """Wrap a figure so that it is moved by ``offset``."""
    info = get_figure_info(child)
    bbox = info.bbox.translated(offset) if info.bbox is not None else None
    idx = _alloc_node(
        FigureKind.TRANSLATE,
        FigureInfo(
            FigureKind.TRANSLATE, bbox, (child,), info.has_medium, info.stack_depth
        ),
    )
    figure_child[idx] = child
    figure_p0[idx] = offset
    return idx


def rotated_y_bbox(bbox: Aabb, cos_theta: float, sin_theta: float) -> Aabb:
    """Box around the eight corners of ``bbox`` rotated about the Y axis."""
    corners = np.array(bbox.corners(), dtype=np.float64)
    rotated = np.column_stack(
        (
            cos_theta * corners[:, 0] + sin_theta * corners[:, 2],
            corners[:, 1],
            -sin_theta * corners[:, 0] + cos_theta * corners[:, 2],
        )
    )
    return Aabb(tuple(rotated.min(axis=0)), tuple(rotated.max(axis=0)))


def add_rotate_y(child: int, angle_degrees: float) -> int:
    """Wrap a figure so that it is rotated about the Y axis."""
    info = get_figure_info(child)
    radians = math.radians(angle_degrees)
    cos_theta = math.cos(radians)
    sin_theta = math.sin(radians)
    bbox = None
    if info.bbox is not None:
        bbox = rotated_y_bbox(info.bbox, cos_theta, sin_theta)
    idx = _alloc_node(
        FigureKind.ROTATE_Y,
        FigureInfo(
            FigureKind.ROTATE_Y, bbox, (child,), info.has_medium, info.stack_depth
        ),
    )
    figure_child[idx] = child
    figure_s0[idx] = cos_theta
    figure_s1[idx] = sin_theta
    return idx


def add_constant_medium(boundary: int, density: float) -> int:
    """Fill a closed boundary figure with a homogeneous participating medium.

    Raises:
        ValueError: If the density is not positive, the boundary itself
            contains a medium, or the boundary is nested too deeply.
    """
    info = get_figure_info(boundary)
    if not density > 0.0:
        raise ValueError(f"Medium density must be positive, got {density}")
    if info.has_medium:
        raise ValueError("A medium boundary cannot contain another medium")
    check_stack_depth(boundary)
    idx = _alloc_node(
        FigureKind.CONSTANT_MEDIUM,
        FigureInfo(FigureKind.CONSTANT_MEDIUM, info.bbox, (boundary,), True),
    )
    figure_child[idx] = boundary
    figure_s0[idx] = density
    return idx


def _add_list_node(kind: FigureKind, children, bbox: Aabb | None) -> int:
    children = tuple(int(c) for c in children)
    if not children:
        raise ValueError(f"{kind.name.lower()} needs at least one child")
    infos = [get_figure_info(c) for c in children]
    start = _alloc_child_refs(children)
    idx = _alloc_node(
        kind,
        FigureInfo(
            kind,
            bbox,
            children,
            any(i.has_medium for i in infos),
            1 + max(i.stack_depth for i in infos),
        ),
    )
    figure_child[idx] = start
    figure_child2[idx] = len(children)
    return idx


def add_group(children) -> int:
    """Add an unordered group searched linearly for the nearest hit."""
    return _add_list_node(FigureKind.GROUP, children, None)


def add_cuboid(
    p0: tuple[float, float, float], p1: tuple[float, float, float]
) -> int:
    """Add an axis-aligned box spanning ``p0`` to ``p1`` built from six rects.

    The faces on the minimum side of each axis are flipped so that every
    normal points out of the box.
    """
    x0, y0, z0 = (float(c) for c in p0)
    x1, y1, z1 = (float(c) for c in p1)
    sides = [
        add_xy_rect(x0, x1, y0, y1, z1),
        add_flip_normals(add_xy_rect(x0, x1, y0, y1, z0)),
        add_xz_rect(x0, x1, z0, z1, y1),
        add_flip_normals(add_xz_rect(x0, x1, z0, z1, y0)),
        add_yz_rect(y0, y1, z0, z1, x1),
        add_flip_normals(add_yz_rect(y0, y1, z0, z1, x0)),
    ]
    return _add_list_node(FigureKind.CUBOID, sides, Aabb((x0, y0, z0), (x1, y1, z1)))


def add_bvh_node(left: int, right: int) -> int:
    """Add a BVH node whose box surrounds both children.

    Raises:
        ValueError: If either child has no bounding box.
    """
    left_info = get_figure_info(left)
    right_info = get_figure_info(right)
    if left_info.bbox is None or right_info.bbox is None:
        raise ValueError("BVH children must have bounding boxes")
    # The right child waits on the stack while the left one is searched
    depth = left_info.stack_depth
    if left != right:
        depth = max(1 + left_info.stack_depth, right_info.stack_depth)
    idx = _alloc_node(
        FigureKind.BVH_NODE,
        FigureInfo(
            FigureKind.BVH_NODE,
            left_info.bbox.surround(right_info.bbox),
            (left, right),
            left_info.has_medium or right_info.has_medium,
            depth,
        ),
    )
    figure_child[idx] = left
    figure_child2[idx] = right
    return idx


# =============================================================================
# Traversal
# =============================================================================


@ti.func
def _hit_leaf(
    kind: ti.i32,
    node: ti.i32,
    origin: vec3,
    direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    rec = HitRecord(hit=0)
    if kind == int(FigureKind.SPHERE):
        rec = hit_sphere(figure_p0[node], figure_s0[node], origin, direction, t_min, t_max)
    elif kind == int(FigureKind.XY_RECT):
        rec = hit_rect(XY, figure_p0[node], figure_p1[node], origin, direction, t_min, t_max)
    elif kind == int(FigureKind.YZ_RECT):
        rec = hit_rect(YZ, figure_p0[node], figure_p1[node], origin, direction, t_min, t_max)
    elif kind == int(FigureKind.XZ_RECT):
        rec = hit_rect(XZ, figure_p0[node], figure_p1[node], origin, direction, t_min, t_max)
    return rec


@ti.func
def _traverse(
    root: ti.i32,
    origin: vec3,
    direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
    allow_media: ti.template(),
) -> SceneHitRecord:
    """Find the nearest hit below ``root`` in the open interval (t_min, t_max).

    ``allow_media`` is a compile-time flag. Medium boundaries are traversed
    with it disabled, which is why media cannot nest.

    Each stack entry carries the accumulated transform of its node. A group
    or cuboid stays on the stack as a cursor over its children, and a wrapper
    replaces its own entry with its child, so the stack needed is the
    ``stack_depth`` recorded for the root on the host.
    """
    closest = t_max
    result = SceneHitRecord(hit=0, material_id=-1)

    st_node = ti.Vector([0] * STACK_SIZE, dt=ti.i32)
    st_mat = ti.Vector([0] * STACK_SIZE, dt=ti.i32)
    st_next = ti.Vector([0] * STACK_SIZE, dt=ti.i32)
    st_cos = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_sin = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_ox = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_oy = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_oz = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_flip = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)

    st_node[0] = root
    st_mat[0] = -1
    st_next[0] = -1
    st_cos[0] = 1.0
    st_flip[0] = 1.0
    sp = 1

    while sp > 0:
        top = sp - 1
        node = st_node[top]
        mat = st_mat[top]
        cs = st_cos[top]
        sn = st_sin[top]
        offset = vec3(st_ox[top], st_oy[top], st_oz[top])
        flip = st_flip[top]
        kind = figure_kinds[node]

        if st_next[top] >= 0:
            # Group or cuboid cursor: visit the next child or finish
            i = st_next[top]
            if i < figure_child2[node]:
                st_next[top] = i + 1
                # Depth is bounded on the host by check_stack_depth
                if sp < STACK_SIZE:
                    st_node[sp] = figure_child_refs[figure_child[node] + i]
                    st_mat[sp] = mat
                    st_next[sp] = -1
                    st_cos[sp] = cs
                    st_sin[sp] = sn
                    st_ox[sp] = offset.x
                    st_oy[sp] = offset.y
                    st_oz[sp] = offset.z
                    st_flip[sp] = flip
                    sp += 1
            else:
                sp -= 1
        else:
            if figure_materials[node] >= 0:
                mat = figure_materials[node]
            local_origin = rotate_y_inverse(origin, cs, sn) + offset
            local_direction = rotate_y_inverse(direction, cs, sn)

            # Entry that takes this node's slot, and a second one pushed above it
            replace = -1
            extra = -1
            is_list = False
            child_cs = cs
            child_sn = sn
            child_offset = offset
            child_flip = flip

            rec = HitRecord(hit=0)
            if kind <= int(FigureKind.XZ_RECT):
                rec = _hit_leaf(kind, node, local_origin, local_direction, t_min, closest)
            elif kind == int(FigureKind.FLIP_NORMALS):
                replace = figure_child[node]
                child_flip = -flip
            elif kind == int(FigureKind.TRANSLATE):
                replace = figure_child[node]
                child_offset = offset - figure_p0[node]
            elif kind == int(FigureKind.ROTATE_Y):
                replace = figure_child[node]
                c_theta = figure_s0[node]
                s_theta = figure_s1[node]
                child_cs = cs * c_theta - sn * s_theta
                child_sn = sn * c_theta + cs * s_theta
                child_offset = rotate_y_inverse(offset, c_theta, s_theta)
            elif kind == int(FigureKind.CONSTANT_MEDIUM):
                if ti.static(allow_media):
                    rec = _medium_hit(node, local_origin, local_direction, t_min, closest)
            elif kind == int(FigureKind.GROUP) or kind == int(FigureKind.CUBOID):
                is_list = True
            elif kind == int(FigureKind.BVH_NODE):
                if hit_aabb(
                    figure_bbox_min[node],
                    figure_bbox_max[node],
                    local_origin,
                    local_direction,
                    t_min,
                    closest,
                ):
                    replace = figure_child2[node]
                    extra = figure_child[node]
                    if extra == replace:
                        extra = -1

            if rec.hit == 1 and rec.t < closest:
                closest = rec.t
                result = SceneHitRecord(
                    hit=1,
                    t=rec.t,
                    point=rotate_y_forward(rec.point - offset, cs, sn),
                    normal=rotate_y_forward(rec.normal, cs, sn) * flip,
                    u=rec.u,
                    v=rec.v,
                    material_id=mat,
                )

            if is_list:
                st_mat[top] = mat
                st_next[top] = 0
            elif replace >= 0:
                st_node[top] = replace
                st_mat[top] = mat
                st_cos[top] = child_cs
                st_sin[top] = child_sn
                st_ox[top] = child_offset.x
                st_oy[top] = child_offset.y
                st_oz[top] = child_offset.z
                st_flip[top] = child_flip
                if extra >= 0 and sp < STACK_SIZE:
                    st_node[sp] = extra
                    st_mat[sp] = mat
                    st_next[sp] = -1
                    st_cos[sp] = child_cs
                    st_sin[sp] = child_sn
                    st_ox[sp] = child_offset.x
                    st_oy[sp] = child_offset.y
                    st_oz[sp] = child_offset.z
                    st_flip[sp] = child_flip
                    sp += 1
            else:
                sp -= 1

    return result


@ti.func
def _medium_hit(
    node: ti.i32,
    origin: vec3,
    direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Sample a scattering event inside a ConstantMedium node.

    The entry and exit of the boundary are found over the whole line, then
    clamped to the query interval. The free-flight distance is sampled in
    world units and converted to the ray parameter with ``|direction|``.
    The hit has a placeholder normal (1, 0, 0) and u = v = 0.
    """
    result = HitRecord(hit=0)
    boundary = figure_child[node]
    density = figure_s0[node]

    entry = _traverse(boundary, origin, direction, -INF, INF, False)
    if entry.hit == 1:
        exit_ = _traverse(
            boundary, origin, direction, entry.t + MEDIUM_EXIT_EPSILON, INF, False
        )
        if exit_.hit == 1:
            t_enter = ti.max(entry.t, t_min)
            t_exit = ti.min(exit_.t, t_max)
            if t_enter < t_exit:
                t_enter = ti.max(t_enter, 0.0)
                ray_length = tm.length(direction)
                distance_inside = (t_exit - t_enter) * ray_length
                hit_distance = -(1.0 / density) * ti.log(ti.random(ti.f32))
                if hit_distance < distance_inside:
                    t = t_enter + hit_distance / ray_length
                    result = HitRecord(
                        hit=1,
                        t=t,
                        point=origin + t * direction,
                        normal=vec3(1.0, 0.0, 0.0),
                        u=0.0,
                        v=0.0,
                    )
    return result


@ti.func
def hit_figure(
    node: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Nearest intersection of a ray with the figure tree rooted at ``node``.

    Args:
        node: Root node id.
        ray_origin: World-space ray origin.
        ray_direction: World-space ray direction (need not be normalized).
        t_min: Exclusive lower bound for a valid hit.
        t_max: Upper bound for a valid hit.

    Returns:
        A SceneHitRecord in world space.
    """
    return _traverse(node, ray_origin, ray_direction, t_min, t_max, True)


# =============================================================================
# Light-shape sampling
# =============================================================================


@ti.func
def _leaf_pdf_value(kind: ti.i32, node: ti.i32, origin: vec3, direction: vec3) -> ti.f32:
    value = 0.0
    if kind == int(FigureKind.SPHERE):
        value = sphere_pdf_value(figure_p0[node], figure_s0[node], origin, direction)
    elif kind == int(FigureKind.XY_RECT):
        value = rect_pdf_value(XY, figure_p0[node], figure_p1[node], origin, direction)
    elif kind == int(FigureKind.YZ_RECT):
        value = rect_pdf_value(YZ, figure_p0[node], figure_p1[node], origin, direction)
    elif kind == int(FigureKind.XZ_RECT):
        value = rect_pdf_value(XZ, figure_p0[node], figure_p1[node], origin, direction)
    return value


@ti.func
def _leaf_random(kind: ti.i32, node: ti.i32, origin: vec3) -> vec3:
    result = vec3(1.0, 0.0, 0.0)
    if kind == int(FigureKind.SPHERE):
        result = sphere_random(figure_p0[node], figure_s0[node], origin)
    elif kind == int(FigureKind.XY_RECT):
        result = rect_random(XY, figure_p0[node], figure_p1[node], origin)
    elif kind == int(FigureKind.YZ_RECT):
        result = rect_random(YZ, figure_p0[node], figure_p1[node], origin)
    elif kind == int(FigureKind.XZ_RECT):
        result = rect_random(XZ, figure_p0[node], figure_p1[node], origin)
    return result


@ti.func
def figure_pdf_value(node: ti.i32, origin: vec3, direction: vec3) -> ti.f32:
    """Density with which ``figure_random`` would pick ``direction``.

    Spheres and rectangles are sampled directly. FlipNormals and Translate
    delegate to their child, and groups are an equal-weight mixture of their
    children. Any other figure has density 0.
    """
    total = 0.0
    st_node = ti.Vector([0] * STACK_SIZE, dt=ti.i32)
    st_next = ti.Vector([0] * STACK_SIZE, dt=ti.i32)
    st_weight = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_ox = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_oy = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_oz = ti.Vector([0.0] * STACK_SIZE, dt=ti.f32)
    st_node[0] = node
    st_next[0] = -1
    st_weight[0] = 1.0
    sp = 1

    while sp > 0:
        top = sp - 1
        current = st_node[top]
        weight = st_weight[top]
        offset = vec3(st_ox[top], st_oy[top], st_oz[top])
        kind = figure_kinds[current]

        if st_next[top] >= 0:
            i = st_next[top]
            count = figure_child2[current]
            if i < count:
                st_next[top] = i + 1
                if sp < STACK_SIZE:
                    st_node[sp] = figure_child_refs[figure_child[current] + i]
                    st_next[sp] = -1
                    st_weight[sp] = weight / count
                    st_ox[sp] = offset.x
                    st_oy[sp] = offset.y
                    st_oz[sp] = offset.z
                    sp += 1
            else:
                sp -= 1
        elif kind <= int(FigureKind.XZ_RECT):
            total += weight * _leaf_pdf_value(kind, current, origin + offset, direction)
            sp -= 1
        elif kind == int(FigureKind.FLIP_NORMALS) or kind == int(FigureKind.TRANSLATE):
            if kind == int(FigureKind.TRANSLATE):
                offset -= figure_p0[current]
            st_node[top] = figure_child[current]
            st_ox[top] = offset.x
            st_oy[top] = offset.y
            st_oz[top] = offset.z
        elif kind == int(FigureKind.GROUP):
            st_next[top] = 0
        else:
            sp -= 1

    return total


@ti.func
def figure_random(node: ti.i32, origin: vec3) -> vec3:
    """Direction from ``origin`` toward a random point on the figure.

    Groups pick one child uniformly. Figures that cannot be sampled return
    (1, 0, 0).
    """
    current = node
    offset = vec3(0.0, 0.0, 0.0)
    result = vec3(1.0, 0.0, 0.0)
    done = False
    while not done:
        kind = figure_kinds[current]
        if kind <= int(FigureKind.XZ_RECT):
            result = _leaf_random(kind, current, origin + offset)
            done = True
        elif kind == int(FigureKind.FLIP_NORMALS):
            current = figure_child[current]
        elif kind == int(FigureKind.TRANSLATE):
            offset -= figure_p0[current]
            current = figure_child[current]
        elif kind == int(FigureKind.GROUP):
            count = figure_child2[current]
            pick = ti.min(ti.cast(ti.random(ti.f32) * count, ti.i32), count - 1)
            current = figure_child_refs[figure_child[current] + pick]
        else:
            done = True
    return result
