#!/usr/bin/env python3
"""Convert a directory of PNG frames into a rectangle-frames JSON payload.

Usage:
  python convert_rectframes.py --in frames --out out/rectFrames.json --w 192 --h 144

Each frame is thresholded (see process_frames.py) and the resulting mask is
split into rectangles (see merge_rects.py). The payload looks like:

  {"width": 192, "height": 144, "fps": 30, "threshold": 121, "th_mul": 0.95,
   "invert": false, "frames_count": 2,
   "rect_frames": [[{"x": 0, "y": 0, "w": 3, "h": 2, "v": 1}, ...], ...]}

`threshold` is the average of the per-frame thresholds and is only
informational; players only need `rect_frames`.
"""
from __future__ import annotations

import os
import sys
import json
import math
import argparse
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor
from itertools import repeat
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from merge_rects import merge_frame_to_rects
from process_frames import (
    ConfigurationError, DimensionMismatchError, GrayFrame, RectFramesError, binarize, check_th_mul,
    frame_paths, load_gray_frame,
)

PROGRESS_EVERY = 200


@dataclass
class ConvertOpts:
    w: int = 192
    h: int = 144
    fps: int = 30
    invert: bool = False
    th_mul: float = 0.95
    in_dir: str = 'frames'
    workers: int = 1

    def validate(self) -> None:
        check_th_mul(self.th_mul)
        if self.w < 1 or self.h < 1:
            raise ConfigurationError(f'Invalid frame size {self.w}x{self.h}')
        if self.fps < 1:
            raise ConfigurationError(f'Invalid frame rate {self.fps}')
        if self.workers < 1:
            raise ConfigurationError(f'Invalid worker count {self.workers}')


def process_frame(frame: GrayFrame, opts: ConvertOpts) -> Tuple[List[dict], float]:
    """Binarize and merge one frame; returns (rects, threshold)."""
    if frame.w != opts.w or frame.h != opts.h:
        raise DimensionMismatchError(frame.name, (opts.w, opts.h), (frame.w, frame.h))
    mask, th = binarize(frame, opts.th_mul, invert=opts.invert)
    return merge_frame_to_rects(mask, frame.w, frame.h), th


def _process_path(path: Path, opts: ConvertOpts) -> Tuple[List[dict], float]:
    return process_frame(load_gray_frame(path), opts)


def _round_half_up(value: float) -> int:
    whole = math.floor(value)
    return whole + 1 if value - whole >= 0.5 else whole


def _collect(results: Iterable[Tuple[List[dict], float]], opts: ConvertOpts,
             total: Optional[int] = None) -> dict:
    rect_frames = []
    th_sum = 0.0
    for i, (rects, th) in enumerate(results):
        rect_frames.append(rects)
        th_sum += th
        if i % PROGRESS_EVERY == 0:
            print(f'  {i}/{total}' if total is not None else f'  {i}')

    if not rect_frames:
        raise ConfigurationError('No frames to convert')

    # a threshold past the float32 range is inf, so clamp before rounding
    avg_th = _round_half_up(min(max(th_sum / len(rect_frames), 0.0), 255.0))
    return {
        'width': opts.w,
        'height': opts.h,
        'fps': opts.fps,
        'threshold': avg_th,
        'th_mul': opts.th_mul,
        'invert': bool(opts.invert),
        'frames_count': len(rect_frames),
        'rect_frames': rect_frames,
    }


def convert_frames(frames: Iterable[GrayFrame], opts: ConvertOpts) -> dict:
    """Convert already-decoded frames, in the order given."""
    opts.validate()
    total = len(frames) if hasattr(frames, '__len__') else None
    return _collect((process_frame(f, opts) for f in frames), opts, total)


def _iter_results(files: List[Path], opts: ConvertOpts) -> Iterator[Tuple[List[dict], float]]:
    if opts.workers == 1:
        for fp in files:
            yield _process_path(fp, opts)
        return
    # map() yields in submission order, so the first error raised is the
    # one with the lowest frame index
    executor = ProcessPoolExecutor(max_workers=opts.workers)
    try:
        chunksize = max(1, len(files) // (opts.workers * 4))
        yield from executor.map(_process_path, files, repeat(opts), chunksize=chunksize)
    finally:
        # frames not started yet are dropped when the batch aborts
        executor.shutdown(wait=True, cancel_futures=True)


def convert_rectframes(opts: ConvertOpts) -> dict:
    opts.validate()
    in_dir = Path(opts.in_dir)
    if not in_dir.is_dir():
        raise ConfigurationError(f'Input directory not found: {in_dir}')

    files = frame_paths(in_dir)
    if not files:
        raise ConfigurationError(f'No PNG frames found in {in_dir}')

    print('Frames:', len(files))
    print(f'Size: {opts.w}x{opts.h} @ {opts.fps}fps')
    print('Invert:', bool(opts.invert))
    print('Threshold multiplier:', opts.th_mul)

    return _collect(_iter_results(files, opts), opts, len(files))


def convert_rectframes_to_file(opts: ConvertOpts, out_file) -> dict:
    payload = convert_rectframes(opts)

    out_file = Path(out_file)
    os.makedirs(out_file.parent, exist_ok=True)
    with open(out_file, 'w') as fh:
        json.dump(payload, fh, separators=(',', ':'))

    print('Wrote', out_file)
    print('frames_count:', payload['frames_count'])
    print('avg threshold:', payload['threshold'])
    return payload


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument('--w', type=int, default=192)
    parser.add_argument('--h', type=int, default=144)
    parser.add_argument('--fps', type=int, default=30)
    parser.add_argument('--invert', type=int, choices=(0, 1), default=0)
    parser.add_argument('--in', dest='in_dir', default='frames')
    parser.add_argument('--out', default='out/rectFrames.json')
    parser.add_argument('--th-mul', '--th_mul', dest='th_mul', type=float, default=0.95)
    parser.add_argument('--workers', type=int, default=1,
                        help='Worker processes (1 = convert in this process)')
    args = parser.parse_args(argv)

    opts = ConvertOpts(
        w=args.w,
        h=args.h,
        fps=args.fps,
        invert=args.invert == 1,
        th_mul=args.th_mul,
        in_dir=args.in_dir,
        workers=args.workers,
    )
    try:
        convert_rectframes_to_file(opts, args.out)
    except RectFramesError as exc:
        print('error:', exc, file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
