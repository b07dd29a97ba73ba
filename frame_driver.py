"""
spectrabeat - Frame Driver
Runs the aggregator and the peak detector once per analyzed frame and keeps
session statistics for the shutdown summary/report.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from config import Config
from frequency_utils import map_range
from logging_utils import log_event
from peak_detector import AdaptivePeakDetector
from session_reporter import SessionReporter
from spectral_aggregator import FrequencyBand, SpectralAggregator


@dataclass
class PeakEvent:
    """Represents a detected peak"""
    frame_index: int          # Frame the peak fired on (0-based)
    timestamp: float          # Wall-clock time of the frame
    energy: float             # Normalized band energy (0.0-1.0)
    centroid: float           # Spectral centroid of the frame (Hz)


@dataclass
class FrameResult:
    """Aggregates computed for one frame"""
    frame_index: int
    energy: float             # Normalized energy over the detector's range
    centroid: float           # Hz
    is_peak: bool
    linear_averages: list[float] = field(default_factory=list)
    log_averages: list[float] = field(default_factory=list)


class FrameDriver:
    def __init__(
        self,
        config: Config,
        peak_callback: Optional[Callable[[PeakEvent], None]] = None,
        report_dir: Optional[Path] = None,
    ):
        self.config = config
        self.peak_callback = peak_callback
        self.report_dir = Path(report_dir) if report_dir is not None else None

        self.aggregator = SpectralAggregator.from_config(config.analyzer)
        self.detector = AdaptivePeakDetector.from_config(config.peak)
        self.detector.on_peak(self._handle_peak)

        # Octave bands only depend on nyquist; rebuilt when it changes
        self._octave_bands: list[FrequencyBand] = []
        self._octave_nyquist: Optional[float] = None
        self._warned_bin_count: Optional[int] = None

        self.frame_index = -1
        self._frame_time = 0.0
        self._frame_centroid = 0.0
        self._reset_session_stats()

    def _reset_session_stats(self) -> None:
        self._session_started_at = time.time()
        self._session_frame_count = 0
        self._session_peak_count = 0
        self._session_energy_min: float | None = None
        self._session_energy_max: float | None = None
        self._session_centroid_min: float | None = None
        self._session_centroid_max: float | None = None
        self._session_energy_sum = 0.0
        self._session_centroid_sum = 0.0

    def _update_session_stats(self, energy: float, centroid: float) -> None:
        self._session_frame_count += 1
        self._session_energy_sum += energy
        self._session_centroid_sum += centroid
        if self._session_energy_min is None or energy < self._session_energy_min:
            self._session_energy_min = energy
        if self._session_energy_max is None or energy > self._session_energy_max:
            self._session_energy_max = energy
        if self._session_centroid_min is None or centroid < self._session_centroid_min:
            self._session_centroid_min = centroid
        if self._session_centroid_max is None or centroid > self._session_centroid_max:
            self._session_centroid_max = centroid

    def octave_bands(self) -> list[FrequencyBand]:
        nyquist = self.aggregator.nyquist
        if self._octave_nyquist != nyquist:
            cfg = self.config.analyzer
            self._octave_bands = self.aggregator.octave_bands(cfg.octave_divisions, cfg.min_center_freq)
            self._octave_nyquist = nyquist
        return self._octave_bands

    def _check_bin_count(self) -> None:
        # Warn once per unexpected length; the aggregates still work on any size
        got = self.aggregator.bin_count
        expected = self.config.analyzer.bins
        if got != expected and got != self._warned_bin_count:
            log_event("WARNING", "Frame", "Frame length differs from configured bin count",
                      expected=expected, got=got)
            self._warned_bin_count = got

    def _handle_peak(self, energy: float, _value) -> None:
        self._session_peak_count += 1
        event = PeakEvent(
            frame_index=self.frame_index,
            timestamp=self._frame_time,
            energy=energy,
            centroid=self._frame_centroid,
        )
        log_event("INFO", "PEAK", "Peak detected", frame=event.frame_index,
                  energy=f"{energy:.4f}", centroid_hz=f"{event.centroid:.0f}")
        if self.peak_callback is not None:
            self.peak_callback(event)

    def process_frame(self, bins: Sequence[float], nyquist: Optional[float] = None) -> FrameResult:
        """Aggregate one freshly analyzed frame and advance the peak detector."""
        self.frame_index += 1
        self._frame_time = time.time()
        self.aggregator.set_spectrum(bins, nyquist)
        self._check_bin_count()

        peak_cfg = self.config.peak
        raw_energy = self.aggregator.energy_in_range(peak_cfg.low_freq, peak_cfg.high_freq)
        energy = map_range(raw_energy, 0.0, self.aggregator.max_value, 0.0, 1.0)
        self._frame_centroid = self.aggregator.spectral_centroid()

        self.detector.update(energy)

        linear = self.aggregator.linear_averages(
            min(self.config.analyzer.linear_groups, self.aggregator.bin_count))
        log_avg = self.aggregator.log_averages(self.octave_bands())

        self._update_session_stats(energy, self._frame_centroid)
        return FrameResult(
            frame_index=self.frame_index,
            energy=energy,
            centroid=self._frame_centroid,
            is_peak=self.detector.is_detected,
            linear_averages=linear,
            log_averages=log_avg,
        )

    def session_summary(self) -> dict:
        frames = self._session_frame_count
        ended_at = time.time()
        elapsed_s = max(0.0, ended_at - self._session_started_at)
        energy_mean = self._session_energy_sum / frames if frames else 0.0
        centroid_mean = self._session_centroid_sum / frames if frames else 0.0
        peaks_per_minute = (self._session_peak_count * 60.0 / elapsed_s) if elapsed_s > 0 else 0.0
        return {
            "session_started_at": self._session_started_at,
            "session_ended_at": ended_at,
            "seconds": elapsed_s,
            "frames": frames,
            "peaks": self._session_peak_count,
            "peaks_per_minute": peaks_per_minute,
            "energy_low": float(self._session_energy_min or 0.0),
            "energy_high": float(self._session_energy_max or 0.0),
            "energy_mean": energy_mean,
            "centroid_low": float(self._session_centroid_min or 0.0),
            "centroid_high": float(self._session_centroid_max or 0.0),
            "centroid_mean": centroid_mean,
            "threshold": self.config.peak.threshold,
            "frames_per_peak": self.config.peak.frames_per_peak,
            "low_freq": self.config.peak.low_freq,
            "high_freq": self.config.peak.high_freq,
        }

    def _log_shutdown_summary(self) -> Optional[dict]:
        if self._session_frame_count <= 0:
            return None

        summary = self.session_summary()
        log_event(
            "INFO",
            "Session",
            "Shutdown levels summary",
            frames=summary["frames"],
            peaks=summary["peaks"],
            seconds=f"{summary['seconds']:.1f}",
            energy_min=f"{summary['energy_low']:.6f}",
            energy_max=f"{summary['energy_high']:.6f}",
            energy_mean=f"{summary['energy_mean']:.6f}",
            energy_span=f"{(summary['energy_high'] - summary['energy_low']):.6f}",
            centroid_min=f"{summary['centroid_low']:.1f}",
            centroid_max=f"{summary['centroid_high']:.1f}",
            centroid_mean=f"{summary['centroid_mean']:.1f}",
        )

        if self.config.report_generation_enabled and self.report_dir is not None:
            try:
                SessionReporter(self.report_dir).save_session(summary)
            except OSError as e:
                log_event("ERROR", "Session", "Failed to write session report", error=e)
        return summary

    def stop(self) -> Optional[dict]:
        """End the session: log the summary, write the report and reset the stats."""
        summary = self._log_shutdown_summary()
        self._reset_session_stats()
        self.detector.reset()
        self.frame_index = -1
        return summary
