"""End-to-end detection scenarios on synthetic images."""

import numpy as np

from rnaspot.core.accessors import InMemoryImageAccessor
from rnaspot.core.models import ChannelSpec, Raster, Region, RegionGeometry
from rnaspot.detect.batch import BatchRunner
from rnaspot.detect.log_filter import laplacian_of_gaussian
from rnaspot.detect.maxima import find_maxima


class TestSingleSpot:
    def test_one_bump_one_spot(self, make_bumps):
        image = Raster(make_bumps((100, 100), [(50, 50)]), ("CY5",))
        response = laplacian_of_gaussian(image, sigma=2.0)
        spots = find_maxima(response, prominence=50.0)
        assert len(spots) == 1
        assert abs(spots[0].row - 50) <= 1
        assert abs(spots[0].col - 50) <= 1

    def test_background_only_gives_nothing(self):
        image = Raster(np.full((100, 100), 20.0), ("CY5",))
        response = laplacian_of_gaussian(image, sigma=2.0)
        assert find_maxima(response, prominence=50.0) == []


class TestSeparatedSpots:
    def test_two_distant_bumps(self, make_bumps):
        image = Raster(make_bumps((100, 100), [(50, 35), (50, 65)]), ("CY5",))
        response = laplacian_of_gaussian(image, sigma=2.0)
        spots = find_maxima(response, prominence=50.0)
        assert len(spots) == 2
        cols = sorted(s.col for s in spots)
        assert abs(cols[0] - 35) <= 1
        assert abs(cols[1] - 65) <= 1


class TestMergedSpots:
    def test_close_bumps_count_once(self, make_bumps):
        image = Raster(make_bumps((100, 100), [(50, 48), (50, 51)]), ("CY5",))
        response = laplacian_of_gaussian(image, sigma=2.0)
        assert len(find_maxima(response, prominence=50.0)) == 1


class TestPipeline:
    def test_batch_on_synthetic_slide(self, make_bumps):
        centers = [(20, 20), (20, 60), (60, 20), (60, 60), (70, 70)]
        data = make_bumps((100, 100), centers, background=10.0)
        raster = Raster(data, ("CY5",), pixel_size=0.5)
        left = Region("left", RegionGeometry.from_rectangle(0, 0, 40, 100))
        right = Region("right", RegionGeometry.from_rectangle(40, 0, 60, 100), path_class="Stroma")
        empty = Region("empty", RegionGeometry.from_polygon([(0, 0), (50, 0), (100, 0)]))

        spec = ChannelSpec("CY5", sigma=0.5, prominence=10.0)
        result = BatchRunner(max_workers=2).run_all(
            [left, right, empty], [spec], InMemoryImageAccessor(raster),
        )

        assert left.measurements["RNAScope CY5 Spots"] == 2.0
        assert right.measurements["RNAScope CY5 Spots"] == 3.0
        # 40 x 100 px at 0.5 µm/px = 1000 µm²
        assert left.measurements["RNAScope CY5 Density"] == 2.0 / 1000.0
        assert empty.measurements["RNAScope CY5 Spots"] == 0.0
        assert empty.measurements["RNAScope CY5 Density"] == 0.0
        assert result.total_spots == 5
        assert result.results[1].path_class == "Stroma RNAScope CY5"
        assert len(result.warnings) == 1
