#!/usr/bin/env python3
"""Load grayscale frames and turn them into 1-bit masks.

A frame is thresholded against its own mean intensity scaled by a
multiplier: a pixel is "on" when it is darker than the threshold (or
lighter, when inverted).

Usage:
  python process_frames.py --frames-dir frames --th-mul 0.95

Prints per-frame thresholds and on-pixel counts; useful for picking a
multiplier before running convert_rectframes.py.
"""
from __future__ import annotations

import sys
import math
import struct
from PIL import Image
from pathlib import Path
import argparse
from typing import List, NamedTuple, Tuple

FLOAT32_MAX = 3.4028234663852886e38


class RectFramesError(Exception):
    """Base class for errors that abort a conversion batch."""


class FrameDecodeError(RectFramesError):
    def __init__(self, name: str, reason: str = ''):
        super().__init__(name, reason)
        self.name = name
        self.reason = reason

    def __str__(self):
        msg = f'Failed to decode frame {self.name}'
        if self.reason:
            msg += f': {self.reason}'
        return msg


class DimensionMismatchError(RectFramesError):
    def __init__(self, name: str, expected: Tuple[int, int], actual: Tuple[int, int]):
        super().__init__(name, expected, actual)
        self.name = name
        self.expected = expected
        self.actual = actual

    def __str__(self):
        return (f'Frame size mismatch in {self.name}: got {self.actual[0]}x{self.actual[1]}, '
                f'expected {self.expected[0]}x{self.expected[1]}')


class ConfigurationError(RectFramesError):
    pass


class GrayFrame(NamedTuple):
    name: str
    w: int
    h: int
    data: bytes


def frame_paths(frames_dir) -> List[Path]:
    p = Path(frames_dir)
    return sorted(p.glob('*.png'))


def load_gray_frame(path) -> GrayFrame:
    path = Path(path)
    try:
        with Image.open(path) as im:
            im = im.convert('L')
            w, h = im.size
            data = im.tobytes()
    except OSError as exc:
        raise FrameDecodeError(path.name, str(exc)) from exc
    return GrayFrame(path.name, w, h, data)


def _f32(value: float) -> float:
    # round to IEEE single precision, overflowing to +-inf
    try:
        return struct.unpack('<f', struct.pack('<f', value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def check_th_mul(th_mul) -> None:
    if (not isinstance(th_mul, (int, float)) or not math.isfinite(th_mul)
            or th_mul <= 0 or th_mul > FLOAT32_MAX):
        raise ConfigurationError(f'Threshold multiplier must be a positive number up to {FLOAT32_MAX}, '
                                 f'got {th_mul!r}')


def adaptive_threshold(gray: bytes) -> float:
    """Mean intensity of the buffer, as a float32 value."""
    return _f32(_f32(sum(gray)) / _f32(len(gray)))


def binarize(frame: GrayFrame, th_mul: float, invert: bool = False) -> Tuple[bytes, float]:
    """Threshold a frame into a 0/1 mask.

    Returns the mask (row-major, same size as the frame) and the effective
    threshold ``mean * th_mul``. A pixel is on when ``p < threshold``; the
    result is flipped when ``invert`` is set.
    """
    if len(frame.data) != frame.w * frame.h:
        raise ValueError(f'{frame.name}: buffer holds {len(frame.data)} pixels, '
                         f'expected {frame.w}x{frame.h}')
    th = _f32(adaptive_threshold(frame.data) * _f32(th_mul))
    # pixels are bytes, so a 256-entry lookup table covers every value
    table = bytes(1 if (p < th) != bool(invert) else 0 for p in range(256))
    return frame.data.translate(table), th


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument('--frames-dir', default='frames')
    parser.add_argument('--th-mul', type=float, default=0.95)
    parser.add_argument('--invert', type=int, choices=(0, 1), default=0)
    parser.add_argument('--subset', type=int, default=0,
                        help='Process only first N frames (0 = all)')
    args = parser.parse_args(argv)

    try:
        check_th_mul(args.th_mul)
    except ConfigurationError as exc:
        print('error:', exc, file=sys.stderr)
        return 1

    frames = frame_paths(args.frames_dir)
    if not frames:
        print('No frames found in', args.frames_dir, file=sys.stderr)
        return 1
    if args.subset > 0:
        frames = frames[:args.subset]

    for fp in frames:
        try:
            frame = load_gray_frame(fp)
        except RectFramesError as exc:
            print('error:', exc, file=sys.stderr)
            return 1
        mask, th = binarize(frame, args.th_mul, invert=args.invert == 1)
        print(f'{frame.name}: {frame.w}x{frame.h} threshold={th:.2f} on={sum(mask)}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
