# spectrabeat Configuration
# All default values and constants

from dataclasses import dataclass, field, is_dataclass
from enum import IntEnum

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

# Peak detector constants (fixed, not user-tunable)
DECAY_RATE = 0.95          # Per-frame cutoff decay once the debounce window has elapsed
CUTOFF_MULTIPLIER = 1.5    # Cutoff = triggering energy * this after a peak


class SpectrumScale(IntEnum):
    """Representation of the magnitudes handed over by the analysis engine"""
    BYTE = 1          # Integers 0-255
    NORMALIZED = 2    # Floats 0.0-1.0


SCALE_MAX_VALUES = {
    SpectrumScale.BYTE: 255.0,
    SpectrumScale.NORMALIZED: 1.0,
}


@dataclass
class AnalyzerConfig:
    """Spectrum layout and aggregation parameters"""
    bins: int = 1024                  # Frequency bins per frame (power of two)
    sample_rate: int = 44100          # Hz, nyquist = sample_rate / 2
    scale: SpectrumScale = SpectrumScale.BYTE
    linear_groups: int = 16           # Group count for linear averages
    octave_divisions: int = 3         # 1/N octave bands
    min_center_freq: float = 15.625   # Center of the lowest octave band (Hz)

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2


@dataclass
class PeakDetectConfig:
    """Adaptive peak detector parameters"""
    low_freq: float = 40.0            # Low edge of the watched range (Hz)
    high_freq: float = 20000.0        # High edge of the watched range (Hz)
    threshold: float = 0.35           # Hard floor for normalized energy (0-1)
    frames_per_peak: int = 20         # Debounce window in frames


@dataclass
class Config:
    """Main configuration container"""
    version: int = CURRENT_CONFIG_VERSION
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    peak: PeakDetectConfig = field(default_factory=PeakDetectConfig)
    report_generation_enabled: bool = True   # Write session reports on stop
    log_level: str = "INFO"


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored; IntEnum fields are coerced when possible."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current):
            if isinstance(value, dict):
                apply_dict_to_dataclass(current, value)
            continue

        if isinstance(current, IntEnum):
            try:
                setattr(target, key, current.__class__(value))
            except ValueError:
                log_event("WARNING", "Config", "Could not convert value, keeping default",
                          key=key, expected=current.__class__.__name__, value=value)
            continue

        setattr(target, key, value)


def _is_power_of_two(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0 and (value & (value - 1)) == 0


def _clamped(value, default, limits):
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = float(default)
    low, high = limits
    return max(low, min(high, number))


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Replaces missing/None values with defaults, clamps ranges and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    analyzer_defaults = AnalyzerConfig()
    peak_defaults = PeakDetectConfig()

    if version < 1:
        for name in ("sample_rate", "linear_groups", "octave_divisions", "min_center_freq"):
            if getattr(config.analyzer, name, None) is None:
                setattr(config.analyzer, name, getattr(analyzer_defaults, name))
        for name in ("low_freq", "high_freq"):
            if getattr(config.peak, name, None) is None:
                setattr(config.peak, name, getattr(peak_defaults, name))

    if getattr(config, 'report_generation_enabled', True) is None:
        config.report_generation_enabled = True
    if not isinstance(getattr(config, 'log_level', None), str):
        config.log_level = "INFO"

    # Always keep the bin count usable by the aggregator
    if not _is_power_of_two(getattr(config.analyzer, 'bins', None)):
        config.analyzer.bins = analyzer_defaults.bins

    config.peak.threshold = _clamped(
        config.peak.threshold, peak_defaults.threshold, PEAK_RANGE_LIMITS['threshold'])
    config.peak.frames_per_peak = int(_clamped(
        config.peak.frames_per_peak, peak_defaults.frames_per_peak, PEAK_RANGE_LIMITS['frames_per_peak']))

    config.version = CURRENT_CONFIG_VERSION


PEAK_RANGE_LIMITS = {
    'threshold': (0.01, 0.99),
    'frames_per_peak': (0, 600),
}
