"""Shared fixtures for the rectangle-frame tests."""

import pytest
from PIL import Image


@pytest.fixture
def write_png(tmp_path):
    """Factory writing an 8-bit grayscale PNG into ``tmp_path / 'frames'``.

    ``pixels`` is either a single intensity (uniform frame) or a flat
    row-major list of intensities.
    """
    frames_dir = tmp_path / 'frames'
    frames_dir.mkdir()

    def _write(name, w, h, pixels, mode='L'):
        img = Image.new('L', (w, h), pixels if isinstance(pixels, int) else 0)
        if not isinstance(pixels, int):
            img.putdata(pixels)
        if mode != 'L':
            img = img.convert(mode)
        path = frames_dir / name
        img.save(path)
        return path

    _write.dir = frames_dir
    return _write


def mask_from_rows(rows):
    """Build a flat 0/1 mask from strings like ``'110'``."""
    return bytes(int(c) for row in rows for c in row)
