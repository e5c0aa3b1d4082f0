"""BatchRunner — detect spots in all regions x all configured channels."""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Sequence

from rnaspot.core.accessors import ImageAccessor, RegionSource
from rnaspot.core.exceptions import ChannelNotFoundError, ConfigurationError
from rnaspot.core.models import (
    ChannelSpec,
    MeasurementRecord,
    Region,
    density_metric,
    derived_class,
    spots_metric,
)
from rnaspot.detect.detector import RegionSpotDetector, SpotDetectionResult

logger = logging.getLogger(__name__)

# Errors that abort the whole run instead of becoming per-region warnings
_FATAL_ERRORS = (ConfigurationError, ChannelNotFoundError, MemoryError)


@dataclass(frozen=True)
class RegionChannelResult:
    """Detections of one channel in one region, ready for the host application.

    Attributes:
        region: The analyzed region.
        detection: Spots and measurements.
        path_class: Derived classification, "<region class> RNAScope <channel>".
        color: Channel display colour, if known.
    """

    region: Region
    detection: SpotDetectionResult
    path_class: str
    color: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Result of a batch detection run.

    Attributes:
        results: One entry per successfully processed (region, channel).
        measurements: Measurement records written to the regions.
        regions_processed: Regions with at least one successful channel.
        channels_processed: Number of configured channels.
        elapsed_seconds: Wall-clock time in seconds.
        warnings: List of warning messages.
        cancelled: True if the run was stopped through the cancel event.
    """

    results: list[RegionChannelResult]
    measurements: list[MeasurementRecord]
    regions_processed: int
    channels_processed: int
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def total_spots(self) -> int:
        return sum(r.detection.count for r in self.results)


class BatchRunner:
    """Run RegionSpotDetector over every region and channel of an image.

    Units of work (one region, one channel) are independent and run on a
    thread pool. Results are gathered on the calling thread, in region then
    channel order, which is also the only thread writing region measurements.

    Args:
        detector: Detector to use. If None, uses default settings.
        max_workers: Thread count. None = CPU count, 1 = run inline.
    """

    def __init__(
        self,
        detector: RegionSpotDetector | None = None,
        max_workers: int | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")
        self._detector = detector or RegionSpotDetector()
        self._max_workers = max_workers or os.cpu_count() or 1

    def run_all(
        self,
        regions: RegionSource | Sequence[Region],
        channel_specs: Sequence[ChannelSpec],
        image_accessor: ImageAccessor,
        cancel_event: threading.Event | None = None,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ) -> BatchResult:
        """Detect spots for all regions x all channel specs.

        Args:
            regions: Regions to analyze, or a RegionSource listing them.
            channel_specs: One spec per channel to process.
            image_accessor: Source of region pixels and channel metadata.
            cancel_event: Optional event; once set, units not yet started
                are skipped.
            progress_callback: Optional callback(current, total, label).

        Returns:
            BatchResult with per-unit detections and measurements.

        Raises:
            ConfigurationError: If the channel specs are empty or duplicated.
            ChannelNotFoundError: If a configured channel is not in the image.
        """
        start = time.monotonic()
        warnings: list[str] = []

        if isinstance(regions, RegionSource):
            regions = regions.list_regions()
        regions = list(regions)
        specs = list(channel_specs)
        colors = self._validate(specs, image_accessor)

        if not regions:
            warnings.append("No regions to process")

        units = [(region, spec) for region in regions for spec in specs]
        outcomes = self._execute(units, image_accessor, cancel_event, progress_callback)

        results: list[RegionChannelResult] = []
        measurements: list[MeasurementRecord] = []
        succeeded: set[int] = set()
        cancelled = False

        for (region, spec), outcome in zip(units, outcomes):
            if outcome is None:
                cancelled = True
                continue
            if isinstance(outcome, BaseException):
                warnings.append(
                    f"{region.name}/{spec.name}: detection failed: {outcome}"
                )
                continue

            warnings.extend(outcome.warnings)
            spots_key = spots_metric(spec.name)
            density_key = density_metric(spec.name)
            region.measurements[spots_key] = float(outcome.count)
            region.measurements[density_key] = float(outcome.density)
            measurements.append(MeasurementRecord(
                region=region.name, channel=spec.name,
                metric=spots_key, value=float(outcome.count),
            ))
            measurements.append(MeasurementRecord(
                region=region.name, channel=spec.name,
                metric=density_key, value=float(outcome.density),
            ))
            results.append(RegionChannelResult(
                region=region,
                detection=outcome,
                path_class=derived_class(region.path_class, spec.name),
                color=colors[spec.name],
            ))
            succeeded.add(id(region))

        elapsed = time.monotonic() - start
        if cancelled:
            logger.info("Batch cancelled after %d of %d units", len(results), len(units))
        else:
            logger.info(
                "Processed %d of %d units in %.1fs", len(results), len(units), elapsed,
            )

        return BatchResult(
            results=results,
            measurements=measurements,
            regions_processed=len(succeeded),
            channels_processed=len(specs),
            elapsed_seconds=round(elapsed, 3),
            warnings=warnings,
            cancelled=cancelled,
        )

    def _validate(
        self, specs: list[ChannelSpec], image_accessor: ImageAccessor,
    ) -> dict[str, str | None]:
        """Check the specs against the image before any work starts."""
        if not specs:
            raise ConfigurationError("No channels to process")
        names = [s.name for s in specs]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate channel names: {duplicates}")

        available = image_accessor.channel_names()
        for name in names:
            if name not in available:
                raise ChannelNotFoundError(name)

        return {
            s.name: s.color or image_accessor.get_channel_color(s.name)
            for s in specs
        }

    def _run_unit(
        self,
        region: Region,
        spec: ChannelSpec,
        image_accessor: ImageAccessor,
        cancel_event: threading.Event | None,
    ) -> SpotDetectionResult | Exception | None:
        """Process one (region, channel); None if cancelled before start.

        Non-fatal exceptions are returned rather than raised so that one
        malformed region does not stop the batch.
        """
        if cancel_event is not None and cancel_event.is_set():
            return None
        try:
            raster = image_accessor.get_region_raster(region, [spec.name])
            return self._detector.detect(region, raster, spec)
        except _FATAL_ERRORS:
            raise
        except Exception as exc:
            logger.warning(
                "Spot detection failed for %s/%s: %s",
                region.name, spec.name, exc, exc_info=True,
            )
            return exc

    def _execute(
        self,
        units: list[tuple[Region, ChannelSpec]],
        image_accessor: ImageAccessor,
        cancel_event: threading.Event | None,
        progress_callback: Callable[[int, int, str], None] | None,
    ) -> list[SpotDetectionResult | Exception | None]:
        """Run all units, returning outcomes in unit order."""
        total = len(units)
        outcomes: list[SpotDetectionResult | Exception | None] = [None] * total

        if self._max_workers == 1 or total <= 1:
            for i, (region, spec) in enumerate(units):
                outcomes[i] = self._run_unit(region, spec, image_accessor, cancel_event)
                if progress_callback:
                    progress_callback(i + 1, total, f"{region.name} / {spec.name}")
            return outcomes

        pool = ThreadPoolExecutor(
            max_workers=min(self._max_workers, total),
            thread_name_prefix="rnaspot",
        )
        try:
            futures = {
                pool.submit(self._run_unit, region, spec, image_accessor, cancel_event): i
                for i, (region, spec) in enumerate(units)
            }
            done = 0
            for future in as_completed(futures):
                i = futures[future]
                try:
                    outcomes[i] = future.result()
                except CancelledError:
                    outcomes[i] = None
                done += 1
                if cancel_event is not None and cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()
                if progress_callback:
                    region, spec = units[i]
                    progress_callback(done, total, f"{region.name} / {spec.name}")
        except BaseException:
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)
        return outcomes
