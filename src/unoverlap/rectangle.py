"""
Rectangle geometry and overlap detection for node bounding boxes.

This module provides the axis-aligned rectangle used to represent a node's
footprint, the overlap predicate every quality metric relies on, and a
sweep-line search that reports all overlapping pairs in a set of
rectangles.
"""

from __future__ import annotations

from sortedcontainers import SortedList


class Rectangle:
    """Axis-aligned rectangle."""

    def __init__(self, x: float, X: float, y: float, Y: float):
        """
        Initialize rectangle.

        Args:
            x: Left edge
            X: Right edge
            y: Top edge
            Y: Bottom edge
        """
        self.x = x
        self.X = X
        self.y = y
        self.Y = Y

    @staticmethod
    def empty() -> Rectangle:
        """Create an empty rectangle."""
        inf = float('inf')
        return Rectangle(inf, -inf, inf, -inf)

    @staticmethod
    def from_centre(cx: float, cy: float, width: float, height: float) -> Rectangle:
        """Create a rectangle from its centre and size."""
        hw = width / 2.0
        hh = height / 2.0
        return Rectangle(cx - hw, cx + hw, cy - hh, cy + hh)

    def is_empty(self) -> bool:
        return self.x > self.X or self.y > self.Y

    def cx(self) -> float:
        """Get x center."""
        return (self.x + self.X) / 2.0

    def cy(self) -> float:
        """Get y center."""
        return (self.y + self.Y) / 2.0

    def width(self) -> float:
        """Get width."""
        return self.X - self.x

    def height(self) -> float:
        """Get height."""
        return self.Y - self.y

    def area(self) -> float:
        if self.is_empty():
            return 0.0
        return self.width() * self.height()

    def intersects(self, r: Rectangle) -> bool:
        """
        Test whether two rectangles overlap.

        Rectangles overlap unless they are separated along x or y. Edges
        that touch exactly count as overlapping.
        """
        return not (
            self.X < r.x
            or self.x > r.X
            or self.Y < r.y
            or self.y > r.Y
        )

    def overlap_x(self, r: Rectangle) -> float:
        """Get x-axis overlap with another rectangle."""
        ux = self.cx()
        vx = r.cx()
        if ux <= vx and r.x < self.X:
            return self.X - r.x
        if vx <= ux and self.x < r.X:
            return r.X - self.x
        return 0.0

    def overlap_y(self, r: Rectangle) -> float:
        """Get y-axis overlap with another rectangle."""
        uy = self.cy()
        vy = r.cy()
        if uy <= vy and r.y < self.Y:
            return self.Y - r.y
        if vy <= uy and self.y < r.Y:
            return r.Y - self.y
        return 0.0

    def union(self, r: Rectangle) -> Rectangle:
        """Get union with another rectangle."""
        return Rectangle(
            min(self.x, r.x),
            max(self.X, r.X),
            min(self.y, r.y),
            max(self.Y, r.Y)
        )

    def inflate(self, pad: float) -> Rectangle:
        """
        Inflate rectangle by padding.

        Args:
            pad: Padding amount

        Returns:
            Inflated rectangle
        """
        return Rectangle(self.x - pad, self.X + pad, self.y - pad, self.Y + pad)

    def __repr__(self) -> str:
        return f"Rectangle(x={self.x}, X={self.X}, y={self.y}, Y={self.Y})"


def bounding_rectangle(rs: list[Rectangle]) -> Rectangle:
    """Smallest rectangle enclosing every rectangle in rs."""
    bounds = Rectangle.empty()
    for r in rs:
        bounds = bounds.union(r)
    return bounds


def overlapping_pairs(rs: list[Rectangle], padding: float = 0.0) -> list[tuple[int, int]]:
    """
    Find every pair of overlapping rectangles with a left-to-right sweep.

    Rectangles are visited in order of their left edge. The active set holds
    rectangles whose right edge has not yet been passed, ordered by right
    edge so expired entries can be dropped from the front; each new
    rectangle is only tested against the active set.

    Args:
        rs: Rectangles to test
        padding: Extra clearance added around every rectangle

    Returns:
        Sorted list of index pairs (i, j) with i < j
    """
    if padding:
        rs = [r.inflate(padding) for r in rs]

    order = sorted(range(len(rs)), key=lambda i: rs[i].x)
    active: SortedList = SortedList(key=lambda i: rs[i].X)
    pairs: list[tuple[int, int]] = []

    for i in order:
        r = rs[i]
        while active and rs[active[0]].X < r.x:
            active.pop(0)
        for j in active:
            if not (rs[j].Y < r.y or rs[j].y > r.Y):
                pairs.append((min(i, j), max(i, j)))
        active.add(i)

    pairs.sort()
    return pairs
