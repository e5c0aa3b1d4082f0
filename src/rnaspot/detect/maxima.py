"""Prominence-based 2D local maxima finder.

Candidates (pixels not lower than any 8-connected neighbour) are processed
from the highest to the lowest. Each candidate floods its surroundings
through pixels no lower than ``value - prominence``. The candidate is a
maximum only if the flood neither climbs above the candidate nor runs into
the flood of an earlier, higher candidate: either would be a path to a
higher point that never drops by more than the prominence. In strict mode
the flood must also touch a pixel below ``value - prominence``, so a peak
whose contrast does not exceed the prominence is never reported.

Every flooded pixel is marked, accepted or not, which keeps the total work
close to linear in the number of pixels.
"""

from __future__ import annotations

import math

import numpy as np
from scipy.ndimage import maximum_filter

from rnaspot.core.exceptions import InvalidProminenceError
from rnaspot.core.models import Raster, Spot

# 8-connected neighbourhood without the centre
_NEIGHBOURS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))


def _as_plane(response: Raster | np.ndarray) -> np.ndarray:
    if isinstance(response, Raster):
        plane = response.plane
    else:
        plane = np.asarray(response)
    if plane.ndim != 2:
        raise ValueError(f"Response must be 2D, got {plane.ndim}D")
    return plane.astype(np.float64, copy=False)


def _valid_pixels(values: np.ndarray, mask: np.ndarray | None) -> np.ndarray:
    valid = np.isfinite(values)
    if mask is not None:
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != values.shape:
            raise ValueError(
                f"Mask shape {mask.shape} does not match response shape {values.shape}"
            )
        valid &= mask
    return valid


def _check_prominence(prominence: float) -> float:
    try:
        value = float(prominence)
    except (TypeError, ValueError):
        raise InvalidProminenceError(prominence) from None
    if not (math.isfinite(value) and value >= 0):
        raise InvalidProminenceError(prominence)
    return value


def find_candidates(
    response: Raster | np.ndarray, mask: np.ndarray | None = None,
) -> np.ndarray:
    """Boolean map of pixels that are >= all their in-mask 8-neighbours.

    Pixels outside the mask (or non-finite) are never candidates and are
    ignored as neighbours.
    """
    values = _as_plane(response)
    valid = _valid_pixels(values, mask)
    if values.size == 0:
        return valid
    work = np.where(valid, values, -np.inf)
    footprint = np.ones((3, 3), dtype=bool)
    footprint[1, 1] = False
    neighbour_max = maximum_filter(work, footprint=footprint, mode="constant", cval=-np.inf)
    return valid & (work >= neighbour_max)


def find_maxima(
    response: Raster | np.ndarray,
    prominence: float,
    mask: np.ndarray | None = None,
    strict: bool = True,
) -> list[Spot]:
    """Find prominent local maxima in a response image.

    Args:
        response: Single-channel Raster or 2D array.
        prominence: Minimum drop separating a maximum from any higher point.
        mask: Optional boolean array; maxima and floods stay inside it.
        strict: Require the flood to drop below ``value - prominence``
            somewhere. With strict=False a maximum that never drops that
            far (e.g. the only peak of a flat image) is still accepted.

    Returns:
        Spots in acceptance order (descending value, ties in raster order).
        A plateau yields one spot, at its pixel nearest the plateau centroid.

    Raises:
        InvalidProminenceError: If prominence is negative or not finite.
    """
    prominence = _check_prominence(prominence)
    values = _as_plane(response)
    valid = _valid_pixels(values, mask)
    height, width = values.shape
    if values.size == 0:
        return []

    candidates = find_candidates(values, valid)
    flat_candidates = np.flatnonzero(candidates)
    cand_values = values.ravel()[flat_candidates]
    # Descending value; lexsort is stable so raster order breaks ties
    order = flat_candidates[np.lexsort((flat_candidates, -cand_values))]

    vals = values.ravel().tolist()
    ok = valid.ravel().tolist()
    covered = bytearray(values.size)
    listed = bytearray(values.size)

    spots: list[Spot] = []
    for start in order.tolist():
        if covered[start]:
            continue
        v0 = vals[start]
        floor = v0 - prominence

        flood = [start]
        listed[start] = 1
        equal = [start]
        is_maximum = True
        dropped = False
        i = 0
        while i < len(flood) and is_maximum:
            offset = flood[i]
            y, x = divmod(offset, width)
            for dy, dx in _NEIGHBOURS:
                y2 = y + dy
                x2 = x + dx
                if y2 < 0 or y2 >= height or x2 < 0 or x2 >= width:
                    continue
                offset2 = y2 * width + x2
                if listed[offset2] or not ok[offset2]:
                    continue
                if covered[offset2]:
                    is_maximum = False
                    break
                v2 = vals[offset2]
                if v2 > v0:
                    is_maximum = False
                    break
                if v2 >= floor:
                    listed[offset2] = 1
                    flood.append(offset2)
                    if v2 == v0:
                        equal.append(offset2)
                else:
                    dropped = True
            i += 1

        for offset in flood:
            listed[offset] = 0
            covered[offset] = 1

        if not is_maximum or (strict and not dropped):
            continue

        spots.append(_plateau_point(equal, width, v0))

    return spots


def _plateau_point(equal: list[int], width: int, value: float) -> Spot:
    """Pick the plateau pixel nearest the plateau centroid."""
    coords = [divmod(offset, width) for offset in equal]
    if len(coords) == 1:
        row, col = coords[0]
        return Spot(row=row, col=col, value=value)
    mean_row = sum(r for r, _ in coords) / len(coords)
    mean_col = sum(c for _, c in coords) / len(coords)
    best = coords[0]
    best_dist = math.inf
    for row, col in coords:
        dist = (row - mean_row) ** 2 + (col - mean_col) ** 2
        if dist < best_dist:
            best_dist = dist
            best = (row, col)
    return Spot(row=best[0], col=best[1], value=value)
