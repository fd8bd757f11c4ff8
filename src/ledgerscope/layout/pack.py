"""
Circle-packing layout.

Leaves get a radius proportional to the square root of their value, siblings
are packed around each other with a front-chain algorithm, and every parent
becomes the smallest circle enclosing its packed children. The root circle is
then scaled to fit the canvas, with a fixed padding (in canvas units) between
sibling circles.

Children are ordered by value descending before packing, so the layout is
deterministic and larger ledgers sit near the center.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field

from ..core.hierarchy import HierarchyNode
from ..core.settings import LayoutSettings
from .records import Circle, LayoutResult, check_canvas, check_values, ordered_children

# Fixed seed: the enclosing-circle search shuffles its input.
_SEED = 1


@dataclass(eq=False)
class _Disc:
    node: HierarchyNode
    parent: _Disc | None
    children: list[_Disc] = field(default_factory=list)
    x: float = 0.0
    y: float = 0.0
    r: float = 0.0


@dataclass(eq=False)
class _Chain:
    disc: _Disc
    next: _Chain | None = None
    previous: _Chain | None = None


def _place(b: _Disc, a: _Disc, c: _Disc) -> None:
    """Put ``c`` tangent to both ``a`` and ``b``."""
    dx, dy = b.x - a.x, b.y - a.y
    d2 = dx * dx + dy * dy
    if d2:
        a2 = (a.r + c.r) ** 2
        b2 = (b.r + c.r) ** 2
        if a2 > b2:
            x = (d2 + b2 - a2) / (2 * d2)
            y = math.sqrt(max(0.0, b2 / d2 - x * x))
            c.x = b.x - x * dx - y * dy
            c.y = b.y - x * dy + y * dx
        else:
            x = (d2 + a2 - b2) / (2 * d2)
            y = math.sqrt(max(0.0, a2 / d2 - x * x))
            c.x = a.x + x * dx - y * dy
            c.y = a.y + x * dy + y * dx
    else:
        c.x = a.x + c.r
        c.y = a.y


def _intersects(a: _Disc, b: _Disc) -> bool:
    dr = a.r + b.r - 1e-6
    dx, dy = b.x - a.x, b.y - a.y
    return dr > 0 and dr * dr > dx * dx + dy * dy


def _score(link: _Chain) -> float:
    a, b = link.disc, link.next.disc
    ab = a.r + b.r
    if ab == 0:
        return a.x * a.x + a.y * a.y
    dx = (a.x * b.r + b.x * a.r) / ab
    dy = (a.y * b.r + b.y * a.r) / ab
    return dx * dx + dy * dy


def pack_siblings(discs: list[_Disc], rng: random.Random) -> float:
    """
    Pack sibling discs around the origin without overlap.

    Returns:
        Radius of the circle enclosing all of them, centered on the origin
    """
    n = len(discs)
    if not n:
        return 0.0

    a = discs[0]
    a.x = a.y = 0.0
    if n == 1:
        return a.r

    b = discs[1]
    a.x, b.x, b.y = -b.r, a.r, 0.0
    if n == 2:
        return a.r + b.r

    _place(b, a, discs[2])

    ca, cb, cc = _Chain(a), _Chain(b), _Chain(discs[2])
    ca.next = cc.previous = cb
    cb.next = ca.previous = cc
    cc.next = cb.previous = ca
    head_a, head_b = ca, cb

    i = 3
    while i < n:
        c = discs[i]
        _place(head_a.disc, head_b.disc, c)
        link = _Chain(c)

        # Look for the nearest front-chain circle that the new one overlaps.
        j, k = head_b.next, head_a.previous
        sj, sk = head_b.disc.r, head_a.disc.r
        restart = False
        while True:
            if sj <= sk:
                if _intersects(j.disc, c):
                    head_b = j
                    head_a.next, head_b.previous = head_b, head_a
                    restart = True
                    break
                sj += j.disc.r
                j = j.next
            else:
                if _intersects(k.disc, c):
                    head_a = k
                    head_a.next, head_b.previous = head_b, head_a
                    restart = True
                    break
                sk += k.disc.r
                k = k.previous
            if j is k.next:
                break
        if restart:
            continue

        link.previous, link.next = head_a, head_b
        head_a.next = head_b.previous = link
        head_b = link

        # New pair closest to the centroid.
        best = _score(head_a)
        cursor = link.next
        while cursor is not head_b:
            score = _score(cursor)
            if score < best:
                head_a, best = cursor, score
            cursor = cursor.next
        head_b = head_a.next
        i += 1

    chain = [head_b.disc]
    cursor = head_b.next
    while cursor is not head_b:
        chain.append(cursor.disc)
        cursor = cursor.next
    ex, ey, er = enclose(chain, rng)

    for disc in discs:
        disc.x -= ex
        disc.y -= ey
    return er


# -- smallest enclosing circle -------------------------------------------------

Circle3 = tuple[float, float, float]


def _encloses_not(a: Circle3, b: Circle3) -> bool:
    dr = a[2] - b[2]
    dx, dy = b[0] - a[0], b[1] - a[1]
    return dr < 0 or dr * dr < dx * dx + dy * dy


def _encloses_weak(a: Circle3, b: Circle3) -> bool:
    dr = a[2] - b[2] + max(a[2], b[2], 1.0) * 1e-9
    dx, dy = b[0] - a[0], b[1] - a[1]
    return dr > 0 and dr * dr > dx * dx + dy * dy


def _encloses_weak_all(a: Circle3, basis: list[Circle3]) -> bool:
    return all(_encloses_weak(a, b) for b in basis)


def _basis2(a: Circle3, b: Circle3) -> Circle3:
    x1, y1, r1 = a
    x2, y2, r2 = b
    x21, y21, r21 = x2 - x1, y2 - y1, r2 - r1
    dist = math.sqrt(x21 * x21 + y21 * y21)
    if dist == 0:
        return a if r1 >= r2 else b
    return (
        (x1 + x2 + x21 / dist * r21) / 2,
        (y1 + y2 + y21 / dist * r21) / 2,
        (dist + r1 + r2) / 2,
    )


def _basis3(a: Circle3, b: Circle3, c: Circle3) -> Circle3:
    x1, y1, r1 = a
    x2, y2, r2 = b
    x3, y3, r3 = c
    a2, a3 = x1 - x2, x1 - x3
    b2, b3 = y1 - y2, y1 - y3
    c2, c3 = r2 - r1, r3 - r1
    d1 = x1 * x1 + y1 * y1 - r1 * r1
    d2 = d1 - x2 * x2 - y2 * y2 + r2 * r2
    d3 = d1 - x3 * x3 - y3 * y3 + r3 * r3
    ab = a3 * b2 - a2 * b3
    if ab == 0:
        # Collinear centers: the pair spanning the widest extent wins.
        return max((_basis2(a, b), _basis2(a, c), _basis2(b, c)), key=lambda e: e[2])
    xa = (b2 * d3 - b3 * d2) / (ab * 2) - x1
    xb = (b3 * c2 - b2 * c3) / ab
    ya = (a3 * d2 - a2 * d3) / (ab * 2) - y1
    yb = (a2 * c3 - a3 * c2) / ab
    qa = xb * xb + yb * yb - 1
    qb = 2 * (r1 + xa * xb + ya * yb)
    qc = xa * xa + ya * ya - r1 * r1
    if abs(qa) > 1e-6:
        r = -(qb + math.sqrt(max(0.0, qb * qb - 4 * qa * qc))) / (2 * qa)
    elif qb:
        r = -qc / qb
    else:
        r = 0.0
    return (x1 + xa + xb * r, y1 + ya + yb * r, r)


def _basis_circle(basis: list[Circle3]) -> Circle3:
    if len(basis) == 1:
        return basis[0]
    if len(basis) == 2:
        return _basis2(basis[0], basis[1])
    return _basis3(basis[0], basis[1], basis[2])


def _extend_basis(basis: list[Circle3], p: Circle3) -> list[Circle3]:
    if _encloses_weak_all(p, basis):
        return [p]
    for b in basis:
        if _encloses_not(p, b) and _encloses_weak_all(_basis2(b, p), basis):
            return [b, p]
    for i in range(len(basis) - 1):
        for j in range(i + 1, len(basis)):
            bi, bj = basis[i], basis[j]
            if (
                _encloses_not(_basis2(bi, bj), p)
                and _encloses_not(_basis2(bi, p), bj)
                and _encloses_not(_basis2(bj, p), bi)
                and _encloses_weak_all(_basis3(bi, bj, p), basis)
            ):
                return [bi, bj, p]
    # Floating point left no exact basis; fall back to p with its widest partner.
    return [max(basis, key=lambda b: _basis2(b, p)[2]), p]


def enclose(discs: list[_Disc], rng: random.Random) -> Circle3:
    """Smallest circle enclosing all discs (Welzl's move-to-front variant)."""
    circles = [(d.x, d.y, d.r) for d in discs]
    rng.shuffle(circles)
    basis: list[Circle3] = []
    e: Circle3 | None = None
    i = 0
    while i < len(circles):
        p = circles[i]
        if e is not None and _encloses_weak(e, p):
            i += 1
        else:
            basis = _extend_basis(basis, p)
            e = _basis_circle(basis)
            i = 0
    if e is None:
        raise ValueError("enclose() needs at least one disc")
    return e


# -- layout ----------------------------------------------------------------------


def _build(node: HierarchyNode, parent: _Disc | None) -> _Disc:
    disc = _Disc(node=node, parent=parent)
    disc.children = [_build(child, disc) for child in ordered_children(node)]
    return disc


def _walk_post(disc: _Disc):
    for child in disc.children:
        yield from _walk_post(child)
    yield disc


def _walk_pre(disc: _Disc):
    yield disc
    for child in disc.children:
        yield from _walk_pre(child)


def _pack_pass(root: _Disc, padding: float, rng: random.Random) -> None:
    for disc in _walk_post(root):
        if not disc.children:
            continue
        for child in disc.children:
            child.r += padding
        radius = pack_siblings(disc.children, rng)
        for child in disc.children:
            child.r -= padding
        disc.r = radius + padding


def pack_layout(
    root: HierarchyNode, settings: LayoutSettings | None = None
) -> LayoutResult[Circle]:
    """
    Lay out the visible hierarchy under ``root`` as nested circles.

    **Args:**
        root: Hierarchy node to lay out (collapsed subtrees are skipped)
        settings: Canvas size and ``pack_padding``

    **Returns:**
        LayoutResult of :class:`Circle` records; the root is centered on the
        canvas with radius ``min(width, height) / 2``
    """
    settings = settings or LayoutSettings()
    check_canvas(settings.width, settings.height)
    check_values(root)
    rng = random.Random(_SEED)
    width, height = float(settings.width), float(settings.height)
    side = min(width, height)

    tree = _build(root, None)
    for disc in _walk_pre(tree):
        if not disc.children:
            disc.r = math.sqrt(disc.node.value)

    _pack_pass(tree, 0.0, rng)
    scale = 0.0
    if tree.r > 0:
        # Second pass with padding expressed in unscaled units.
        _pack_pass(tree, settings.pack_padding * tree.r / side, rng)
        scale = side / (2 * tree.r)

    tree.x, tree.y = width / 2, height / 2
    records = []
    for disc in _walk_pre(tree):
        disc.r *= scale
        if disc.parent is not None:
            disc.x = disc.parent.x + scale * disc.x
            disc.y = disc.parent.y + scale * disc.y
        node = disc.node
        records.append(
            Circle(
                node_id=node.node_id,
                name=node.name,
                depth=node.depth,
                value=node.value,
                parent_id=disc.parent.node.node_id if disc.parent else None,
                is_leaf=not disc.children,
                x=disc.x,
                y=disc.y,
                r=disc.r,
            )
        )
    return LayoutResult("pack", records)
