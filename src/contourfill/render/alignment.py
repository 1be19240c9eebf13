from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import matplotlib.path as mpath
import numpy as np
from matplotlib.transforms import Transform


def _round_half_away(values: np.ndarray) -> np.ndarray:
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def snap_to_pixel_centres(device: np.ndarray) -> np.ndarray:
    """Snap device coordinates so one-pixel strokes land on pixel centres."""
    out = np.empty_like(device)
    out[:, 0] = _round_half_away(device[:, 0] - 0.5) + 0.5
    out[:, 1] = np.ceil(device[:, 1]) - 0.5
    return out


def align_points_to_device(
    points: np.ndarray,
    transform: Transform | None = None,
    *,
    batch_size: int = 4096,
    max_workers: int | None = None,
) -> np.ndarray:
    """Align user-space points to device pixels and map them back.

    Batches are independent and write disjoint slices, so they are mapped
    in parallel with no ordering guarantee.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1.")
    pts = np.asarray(points, float).reshape(-1, 2)
    device = transform.transform(pts) if transform is not None else pts.copy()
    aligned = np.empty_like(device)

    def work(sl: slice) -> None:
        aligned[sl] = snap_to_pixel_centres(device[sl])

    n = device.shape[0]
    slices = [slice(i, min(i + batch_size, n)) for i in range(0, n, batch_size)]
    if len(slices) <= 1:
        for sl in slices:
            work(sl)
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            list(pool.map(work, slices))

    if transform is not None:
        return transform.inverted().transform(aligned)
    return aligned


def align_path(path: mpath.Path, transform: Transform | None = None, **kwargs) -> mpath.Path:
    if path.vertices.shape[0] == 0:
        return path
    return mpath.Path(align_points_to_device(path.vertices, transform, **kwargs), path.codes)
