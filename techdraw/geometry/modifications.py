"""
Modification Operations

Fillet, chamfer, trim and extend on line entities, plus the polyline
helpers built on top of them.

All functions are pure: they return new entity values and never touch a
store. Trimmed or extended lines keep the id of the line they came from so
the caller can commit them with ``EntityStore.update``; newly created
entities (arcs, chamfer lines, split pieces) get fresh ids.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..config import DEDUPE_DECIMALS, EPSILON, EXTEND_PROBE_LENGTH
from ..core.errors import InvalidEntityError
from ..core.shapes import (
    ArcEntity, DrawingStyle, Entity, LineEntity, Point, PolylineEntity, new_entity_id,
)
from .intersections import line_entity_intersections, line_intersection

logger = logging.getLogger(__name__)

# Gap allowed between consecutive lines when chaining them into a polyline
JOIN_TOLERANCE = 0.001


@dataclass
class FilletResult:
    """Arc created by a fillet and the lines trimmed to its tangent points."""
    arc: ArcEntity
    corner: Point
    trimmed_line1: Optional[LineEntity] = None
    trimmed_line2: Optional[LineEntity] = None


@dataclass
class ChamferResult:
    """Bevel line created by a chamfer and the lines trimmed to it."""
    chamfer: LineEntity
    corner: Point
    trimmed_line1: Optional[LineEntity] = None
    trimmed_line2: Optional[LineEntity] = None


@dataclass
class BatchResult:
    """Entities created by a batch operation and the resulting lines."""
    created: List[Entity] = field(default_factory=list)
    trimmed_lines: List[LineEntity] = field(default_factory=list)


@dataclass
class _Corner:
    point: Point
    u1: Point
    u2: Point
    angle: float


def _copy_style(source: Entity, style: Optional[DrawingStyle]) -> DrawingStyle:
    return DrawingStyle(**vars(style if style is not None else source.style))


def _far_endpoint(line: LineEntity, corner: Point) -> Point:
    if line.end_point.distance_to(corner) >= line.start_point.distance_to(corner):
        return line.end_point
    return line.start_point


def _replace_near_endpoint(line: LineEntity, corner: Point, new_point: Point) -> LineEntity:
    if line.start_point.distance_to(corner) <= line.end_point.distance_to(corner):
        return line.with_changes(start_point=new_point)
    return line.with_changes(end_point=new_point)


def _corner_at(corner: Point, far1: Point, far2: Point) -> Optional[_Corner]:
    """Unit legs from a corner towards two far points and the angle between them."""
    u1 = (far1 - corner).normalized()
    u2 = (far2 - corner).normalized()
    if u1 is None or u2 is None:
        return None
    angle = math.acos(max(-1.0, min(1.0, u1.dot(u2))))
    if angle < 1e-10 or angle > math.pi - 1e-10:
        return None
    return _Corner(corner, u1, u2, angle)


def _line_corner(line1: LineEntity, line2: LineEntity,
                 epsilon: float = EPSILON) -> Optional[_Corner]:
    corner = line_intersection(line1.start_point, line1.end_point,
                               line2.start_point, line2.end_point, epsilon)
    if corner is None:
        logger.debug(f"Lines {line1.id} and {line2.id} are parallel")
        return None
    return _corner_at(corner, _far_endpoint(line1, corner), _far_endpoint(line2, corner))


def _fillet_arc(corner: _Corner, radius: float, layer: str,
                style: DrawingStyle) -> Optional[Tuple[ArcEntity, Point, Point]]:
    half = corner.angle / 2
    tangent_distance = radius / math.tan(half)
    t1 = corner.point + corner.u1 * tangent_distance
    t2 = corner.point + corner.u2 * tangent_distance

    bisector = (corner.u1 + corner.u2).normalized()
    if bisector is None:
        return None
    center = corner.point + bisector * (radius / math.sin(half))

    start_angle = math.atan2(t1.y - center.y, t1.x - center.x)
    end_angle = math.atan2(t2.y - center.y, t2.x - center.x)
    # Sweep the minor arc between the tangent points
    counterclockwise = (end_angle - start_angle) % (2 * math.pi) <= math.pi

    arc = ArcEntity(
        id=new_entity_id(),
        layer=layer,
        style=style,
        center=center,
        radius=radius,
        start_angle=start_angle,
        end_angle=end_angle,
        counterclockwise=counterclockwise,
    )
    return arc, t1, t2


def fillet(line1: LineEntity, line2: LineEntity, radius: float,
           layer: Optional[str] = None, style: Optional[DrawingStyle] = None,
           trim: bool = True, epsilon: float = EPSILON) -> Optional[FilletResult]:
    """
    Round the corner where two lines (or their extensions) meet.

    Args:
        line1, line2: Lines forming the corner
        radius: Fillet radius
        layer: Layer for the arc (defaults to line1's layer)
        style: Style for the arc (defaults to line1's style)
        trim: Also return both lines cut back to the tangent points
        epsilon: Parallel threshold for the two lines

    Returns:
        FilletResult, or None for parallel or degenerate lines
    """
    if radius <= 0:
        raise InvalidEntityError(f"Fillet radius must be positive, got {radius}")

    corner = _line_corner(line1, line2, epsilon)
    if corner is None:
        return None

    made = _fillet_arc(corner, radius, layer or line1.layer, _copy_style(line1, style))
    if made is None:
        return None
    arc, t1, t2 = made

    result = FilletResult(arc=arc, corner=corner.point)
    if trim:
        result.trimmed_line1 = _replace_near_endpoint(line1, corner.point, t1)
        result.trimmed_line2 = _replace_near_endpoint(line2, corner.point, t2)
    return result


def chamfer(line1: LineEntity, line2: LineEntity, distance1: float,
            distance2: Optional[float] = None, layer: Optional[str] = None,
            style: Optional[DrawingStyle] = None, trim: bool = True,
            epsilon: float = EPSILON) -> Optional[ChamferResult]:
    """
    Bevel the corner where two lines meet.

    distance1 and distance2 are measured from the corner along line1 and
    line2; distance2 defaults to distance1.
    """
    if distance2 is None:
        distance2 = distance1
    if distance1 <= 0 or distance2 <= 0:
        raise InvalidEntityError(
            f"Chamfer distances must be positive, got {distance1}, {distance2}")

    corner = _line_corner(line1, line2, epsilon)
    if corner is None:
        return None

    c1 = corner.point + corner.u1 * distance1
    c2 = corner.point + corner.u2 * distance2
    bevel = LineEntity(
        id=new_entity_id(),
        layer=layer or line1.layer,
        style=_copy_style(line1, style),
        start_point=c1,
        end_point=c2,
    )

    result = ChamferResult(chamfer=bevel, corner=corner.point)
    if trim:
        result.trimmed_line1 = _replace_near_endpoint(line1, corner.point, c1)
        result.trimmed_line2 = _replace_near_endpoint(line2, corner.point, c2)
    return result


def _batch(lines: List[LineEntity], apply, trim: bool) -> BatchResult:
    result = BatchResult(trimmed_lines=list(lines))
    consumed = set()

    for i, line1 in enumerate(lines):
        for j in range(i + 1, len(lines)):
            if i in consumed:
                break
            if j in consumed:
                continue
            made = apply(line1, lines[j])
            if made is None:
                continue
            result.created.append(made.arc if isinstance(made, FilletResult) else made.chamfer)
            if trim:
                result.trimmed_lines[i] = made.trimmed_line1
                result.trimmed_lines[j] = made.trimmed_line2
                consumed.update((i, j))

    return result


def batch_fillet(lines: List[LineEntity], radius: float, layer: Optional[str] = None,
                 style: Optional[DrawingStyle] = None, trim: bool = True,
                 epsilon: float = EPSILON) -> BatchResult:
    """
    Fillet every pair of lines that meet.

    Once a line has been trimmed it takes no part in further pairs.
    """
    return _batch(lines, lambda a, b: fillet(a, b, radius, layer, style, trim, epsilon), trim)


def batch_chamfer(lines: List[LineEntity], distance1: float,
                  distance2: Optional[float] = None, layer: Optional[str] = None,
                  style: Optional[DrawingStyle] = None, trim: bool = True,
                  epsilon: float = EPSILON) -> BatchResult:
    """Chamfer every pair of lines that meet."""
    return _batch(
        lines, lambda a, b: chamfer(a, b, distance1, distance2, layer, style, trim, epsilon), trim)


def _boundary_hits(start: Point, end: Point, selected: LineEntity,
                   boundaries: Iterable[Entity], epsilon: float,
                   decimals: int) -> List[Point]:
    hits = []
    for boundary in boundaries:
        if boundary is selected or (selected.id is not None and boundary.id == selected.id):
            continue
        hits.extend(line_entity_intersections(start, end, boundary, epsilon, decimals))
    return hits


def compute_trim(selected: Entity, boundaries: Iterable[Entity], click_point: Point,
                 epsilon: float = EPSILON,
                 decimals: int = DEDUPE_DECIMALS) -> Optional[LineEntity]:
    """
    Cut a line back to the boundary crossing nearest the click.

    The side of the line containing the click is kept. Returns None when
    the line crosses no boundary.
    """
    if not isinstance(selected, LineEntity):
        logger.debug(f"Trim not supported for {selected.entity_type}")
        return None

    hits = _boundary_hits(selected.start_point, selected.end_point, selected, boundaries,
                          epsilon, decimals)
    if not hits:
        return None
    cut = min(hits, key=click_point.distance_to)

    if click_point.distance_to(selected.start_point) < click_point.distance_to(selected.end_point):
        return selected.with_changes(end_point=cut)
    return selected.with_changes(start_point=cut)


def compute_extend(selected: Entity, boundaries: Iterable[Entity], click_point: Point,
                   probe_length: float = EXTEND_PROBE_LENGTH, epsilon: float = EPSILON,
                   decimals: int = DEDUPE_DECIMALS) -> Optional[LineEntity]:
    """
    Lengthen a line from the end nearest the click to the next boundary.

    Only boundaries ahead of the free end count. Returns None when nothing
    lies within probe_length.
    """
    if not isinstance(selected, LineEntity):
        logger.debug(f"Extend not supported for {selected.entity_type}")
        return None

    start, end = selected.start_point, selected.end_point
    if click_point.distance_to(start) < click_point.distance_to(end):
        free, fixed, free_field = start, end, 'start_point'
    else:
        free, fixed, free_field = end, start, 'end_point'

    back = (fixed - free).normalized()
    if back is None:
        return None
    probe_end = free - back * probe_length

    candidates = [
        p for p in _boundary_hits(free, probe_end, selected, boundaries, epsilon, decimals)
        if back.dot(p - free) < 0
    ]
    if not candidates:
        return None
    target = min(candidates, key=free.distance_to)
    return selected.with_changes(**{free_field: target})


def extend_line_by_length(line: LineEntity, length: float, mode: str = 'end',
                          layer: Optional[str] = None) -> Optional[LineEntity]:
    """
    Lengthen a line by a fixed amount.

    mode is 'start', 'end' or 'both' (half the length at each end).
    """
    if mode not in ('start', 'end', 'both'):
        raise ValueError(f"Unknown extend mode: {mode}")
    direction = (line.end_point - line.start_point).normalized()
    if direction is None:
        return None

    amount = length / 2 if mode == 'both' else length
    start, end = line.start_point, line.end_point
    if mode in ('start', 'both'):
        start = start - direction * amount
    if mode in ('end', 'both'):
        end = end + direction * amount

    return line.with_changes(id=new_entity_id(), layer=layer or line.layer,
                             start_point=start, end_point=end)


def split_line_at_entity(line: LineEntity, entity: Entity, layer: Optional[str] = None,
                         epsilon: float = EPSILON) -> Optional[Tuple[LineEntity, LineEntity]]:
    """Split a line in two at its first crossing with another entity."""
    hits = line_entity_intersections(line.start_point, line.end_point, entity, epsilon)
    if not hits:
        return None
    cut = hits[0]
    target_layer = layer or line.layer
    first = line.with_changes(id=new_entity_id(), layer=target_layer, end_point=cut)
    second = line.with_changes(id=new_entity_id(), layer=target_layer, start_point=cut)
    return first, second


def polyline_to_lines(polyline: PolylineEntity, layer: Optional[str] = None) -> List[LineEntity]:
    """Explode a polyline into one line per segment."""
    points = polyline.points
    if len(points) < 2:
        return []
    pairs = [(points[i], points[i + 1]) for i in range(len(points) - 1)]
    if polyline.closed and len(points) > 2:
        pairs.append((points[-1], points[0]))
    return [
        LineEntity(
            id=new_entity_id(),
            layer=layer or polyline.layer,
            style=_copy_style(polyline, None),
            start_point=a,
            end_point=b,
        )
        for a, b in pairs
    ]


def _chain_lines(lines: List[LineEntity]) -> Optional[List[Tuple[Point, Point]]]:
    """Order lines end to end, flipping them as needed; None if they do not chain."""
    chain = [(lines[0].start_point, lines[0].end_point)]
    remaining = list(lines[1:])
    while remaining:
        tail = chain[-1][1]
        best = None
        best_distance = math.inf
        for line in remaining:
            for a, b in ((line.start_point, line.end_point), (line.end_point, line.start_point)):
                distance = tail.distance_to(a)
                if distance < best_distance:
                    best, best_distance = (line, a, b), distance
        line, a, b = best
        if best_distance > JOIN_TOLERANCE:
            logger.debug(f"Gap of {best_distance} before line {line.id}")
            return None
        remaining.remove(line)
        chain.append((a, b))
    return chain


def lines_to_polyline(lines: List[LineEntity], layer: Optional[str] = None,
                      closed: bool = False) -> Optional[PolylineEntity]:
    """
    Join connected lines into one polyline.

    Returns None for an empty list or lines that do not form a continuous path.
    """
    if not lines:
        return None
    chain = _chain_lines(lines)
    if chain is None:
        return None

    points = [chain[0][0]] + [b for _, b in chain]
    if closed and len(points) > 1 and points[-1].distance_to(points[0]) < JOIN_TOLERANCE:
        points.pop()

    return PolylineEntity(
        id=new_entity_id(),
        layer=layer or lines[0].layer,
        style=_copy_style(lines[0], None),
        points=points,
        closed=closed,
    )


def _polyline_corners(polyline: PolylineEntity) -> List[Tuple[int, Optional[_Corner]]]:
    points = polyline.points
    n = len(points)
    if polyline.closed and n > 2:
        indices = range(n)
    else:
        indices = range(1, n - 1)
    return [(i, _corner_at(points[i], points[i - 1], points[(i + 1) % n])) for i in indices]


def fillet_polyline(polyline: PolylineEntity, radius: float, layer: Optional[str] = None,
                    style: Optional[DrawingStyle] = None,
                    epsilon: float = EPSILON) -> BatchResult:
    """
    Round every corner of a polyline.

    Returns the fillet arcs and the straight pieces left between them.
    """
    if radius <= 0:
        raise InvalidEntityError(f"Fillet radius must be positive, got {radius}")

    points = polyline.points
    arrive = list(points)
    leave = list(points)
    result = BatchResult()
    target_layer = layer or polyline.layer

    for i, corner in _polyline_corners(polyline):
        if corner is None:
            continue
        made = _fillet_arc(corner, radius, target_layer, _copy_style(polyline, style))
        if made is None:
            continue
        arc, t1, t2 = made
        arrive[i], leave[i] = t1, t2
        result.created.append(arc)

    n = len(points)
    edges = range(n if polyline.closed and n > 2 else n - 1)
    for i in edges:
        j = (i + 1) % n
        if leave[i].distance_to(arrive[j]) < epsilon:
            continue
        result.trimmed_lines.append(LineEntity(
            id=new_entity_id(),
            layer=target_layer,
            style=_copy_style(polyline, None),
            start_point=leave[i],
            end_point=arrive[j],
        ))
    return result


def chamfer_polyline(polyline: PolylineEntity, distance1: float,
                     distance2: Optional[float] = None) -> PolylineEntity:
    """Bevel every corner of a polyline; the bevels become polyline segments."""
    if distance2 is None:
        distance2 = distance1
    if distance1 <= 0 or distance2 <= 0:
        raise InvalidEntityError(
            f"Chamfer distances must be positive, got {distance1}, {distance2}")

    replaced = {}
    for i, corner in _polyline_corners(polyline):
        if corner is None:
            continue
        replaced[i] = [corner.point + corner.u1 * distance1,
                       corner.point + corner.u2 * distance2]

    points = []
    for i, p in enumerate(polyline.points):
        points.extend(replaced.get(i, [p]))
    return polyline.with_changes(points=points)
