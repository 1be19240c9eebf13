from __future__ import annotations

import matplotlib.path as mpath
import numpy as np
import pytest
from matplotlib.transforms import Affine2D

from contourfill.render.alignment import align_path, align_points_to_device, snap_to_pixel_centres


def test_snap_to_pixel_centres() -> None:
    device = np.array([[1.2, 1.2], [3.9, 0.1], [-0.2, -1.7]])
    snapped = snap_to_pixel_centres(device)
    np.testing.assert_allclose(snapped, [[1.5, 1.5], [3.5, 0.5], [-0.5, -1.5]])


def test_parallel_batches_match_single_batch() -> None:
    rng = np.random.default_rng(0)
    points = rng.uniform(-50.0, 50.0, size=(5000, 2))
    transform = Affine2D().scale(3.0, 2.0).translate(10.0, 5.0)
    serial = align_points_to_device(points, transform, batch_size=len(points))
    parallel = align_points_to_device(points, transform, batch_size=97, max_workers=4)
    np.testing.assert_array_equal(serial, parallel)


def test_aligned_points_land_on_pixel_centres() -> None:
    transform = Affine2D().scale(4.0)
    points = np.array([[0.3, 0.3], [1.1, 2.6]])
    aligned = align_points_to_device(points, transform)
    device = transform.transform(aligned)
    np.testing.assert_allclose(device % 1.0, 0.5)


def test_align_path_keeps_codes() -> None:
    path = mpath.Path(
        np.array([[0.2, 0.2], [2.7, 0.2], [0.2, 0.2]]),
        [mpath.Path.MOVETO, mpath.Path.LINETO, mpath.Path.CLOSEPOLY],
    )
    aligned = align_path(path)
    assert list(aligned.codes) == list(path.codes)
    assert aligned.vertices.shape == path.vertices.shape


def test_batch_size_validation() -> None:
    with pytest.raises(ValueError):
        align_points_to_device(np.zeros((2, 2)), batch_size=0)
