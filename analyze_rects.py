#!/usr/bin/env python3
"""Analyze a rectFrames JSON payload and compute per-frame statistics.

Outputs `out/stats.json` with per-frame metrics: rectangle count, black
count, overlapping cells (should always be 0), diff count against the
previous frame, best horizontal shift (and overlap fraction), and summary.
"""
from __future__ import annotations

import sys
import json
from pathlib import Path
import argparse
from typing import Dict, List, Set, Tuple


def load_payload(path) -> dict:
    with open(path, 'r') as fh:
        return json.load(fh)


def rects_to_set(rects: List[dict], w: int) -> Tuple[Set[int], int]:
    """Returns (covered pixel indices, number of cells covered more than once)."""
    s = set()
    overlaps = 0
    for r in rects:
        for y in range(r['y'], r['y'] + r['h']):
            for x in range(r['x'], r['x'] + r['w']):
                idx = y * w + x
                if idx in s:
                    overlaps += 1
                s.add(idx)
    return s, overlaps


def best_horizontal_shift(prev_set: Set[int], cur_set: Set[int], w: int, max_shift: int = 32) -> Tuple[int, int]:
    # Returns (best_dx, best_overlap)
    best_dx = 0
    best_overlap = 0
    prev_rows: Dict[int, Set[int]] = {}
    for idx in prev_set:
        prev_rows.setdefault(idx // w, set()).add(idx % w)
    cur_rows: Dict[int, Set[int]] = {}
    for idx in cur_set:
        cur_rows.setdefault(idx // w, set()).add(idx % w)

    for dx in range(-max_shift, max_shift + 1):
        overlap = 0
        for y, cur_xs in cur_rows.items():
            prev_xs = prev_rows.get(y)
            if not prev_xs:
                continue
            # shift cur_xs by -dx to align with prev
            shifted = {x - dx for x in cur_xs if 0 <= x - dx < w}
            overlap += len(shifted & prev_xs)
        if overlap > best_overlap:
            best_overlap = overlap
            best_dx = dx
    return best_dx, best_overlap


def analyze_payload(payload: dict, max_shift: int = 32) -> dict:
    w = payload['width']
    frames = payload['rect_frames']
    stats = {'frames': [], 'summary': {}}
    total_black = 0
    total_rects = 0
    total_diff = 0
    shift_matches = 0
    prev_set = None

    for i, rects in enumerate(frames):
        cur_set, overlaps = rects_to_set(rects, w)
        black = len(cur_set)
        frame_stat = {'frame': i, 'rects': len(rects), 'black': black, 'overlaps': overlaps}
        if prev_set is None:
            frame_stat.update({'diff': black, 'best_dx': 0, 'best_overlap': 0, 'overlap_frac': 0.0})
        else:
            diff = len(prev_set ^ cur_set)
            best_dx, best_overlap = best_horizontal_shift(prev_set, cur_set, w, max_shift=max_shift)
            overlap_frac = best_overlap / max(1, max(len(prev_set), len(cur_set)))
            frame_stat.update({'diff': diff, 'best_dx': best_dx, 'best_overlap': best_overlap,
                               'overlap_frac': overlap_frac})
            total_diff += diff
            if overlap_frac >= 0.7:
                shift_matches += 1

        stats['frames'].append(frame_stat)
        total_black += black
        total_rects += len(rects)
        prev_set = cur_set
        if (i + 1) % 200 == 0:
            print(f'Analyzed {i + 1} frames')

    n = len(frames)
    stats['summary'] = {
        'count': n,
        'avg_rects': total_rects / max(1, n),
        'avg_black': total_black / max(1, n),
        'avg_diff': total_diff / max(1, n - 1),
        'shift_match_percent': 100.0 * shift_matches / max(1, n - 1),
        'width': w,
        'height': payload['height'],
        'threshold': payload.get('threshold'),
    }
    return stats


def analyze_rects(rects_path: str, out_path: str) -> int:
    p = Path(rects_path)
    if not p.is_file():
        print('No payload found at', rects_path, file=sys.stderr)
        return 1
    payload = load_payload(p)
    if not payload.get('rect_frames'):
        print('Payload has no frames:', rects_path, file=sys.stderr)
        return 1

    stats = analyze_payload(payload)

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, 'w') as fh:
        json.dump(stats, fh, indent=2)

    print('Wrote stats to', out_path)
    print('Summary:', stats['summary'])
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument('--rects', default='out/rectFrames.json')
    parser.add_argument('--out', default='out/stats.json')
    args = parser.parse_args(argv)
    return analyze_rects(args.rects, args.out)


if __name__ == '__main__':
    sys.exit(main())
