"""Decompose a 1-bit mask into axis-aligned rectangles.

Strategy:
 1. For each row, collect horizontal runs of on-pixels as (x_start, width)
 2. Grow a rectangle downward only while the exact same (x_start, width)
    run shows up in the next row; any other run starts a new rectangle

Every on-pixel ends up in exactly one rectangle. The result is not the
smallest possible rectangle set, but it is produced in one pass and the
order is stable: rectangles appear in the order of their top row, left to
right.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

Run = Tuple[int, int]


def row_runs(mask: bytes, w: int, h: int) -> List[List[Run]]:
    rows = []
    for y in range(h):
        base = y * w
        runs = []
        x = 0
        while x < w:
            # skip off pixels
            while x < w and not mask[base + x]:
                x += 1
            if x >= w:
                break
            start = x
            while x < w and mask[base + x]:
                x += 1
            runs.append((start, x - start))
        rows.append(runs)
    return rows


def merge_frame_to_rects(mask: bytes, w: int, h: int) -> List[dict]:
    rects: List[dict] = []
    active: Dict[Run, int] = {}

    for y, runs in enumerate(row_runs(mask, w, h)):
        next_active: Dict[Run, int] = {}
        for key in runs:
            rect_idx = active.get(key)
            if rect_idx is not None:
                rects[rect_idx]['h'] += 1
            else:
                rect_idx = len(rects)
                rects.append({'x': key[0], 'y': y, 'w': key[1], 'h': 1, 'v': 1})
            next_active[key] = rect_idx
        active = next_active

    return rects


def rects_to_mask(rects: List[dict], w: int, h: int) -> bytearray:
    """Paint rectangles back into a 0/1 mask of size w x h."""
    mask = bytearray(w * h)
    for r in rects:
        x, y, rw, rh = r['x'], r['y'], r['w'], r['h']
        if x < 0 or y < 0 or rw < 1 or rh < 1 or x + rw > w or y + rh > h:
            raise ValueError(f'Rectangle {r} does not fit in {w}x{h}')
        for yy in range(y, y + rh):
            base = yy * w
            mask[base + x:base + x + rw] = b'\x01' * rw
    return mask
