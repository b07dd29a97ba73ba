"""
spectrabeat - Spectral Aggregator
Energy, centroid and band averages over one frame of frequency-bin magnitudes.

The bins come from an external analysis engine (one refresh per frame); this
module never performs the transform itself. Bin ``i`` covers the frequency
``i * nyquist / bin_count``.
"""

import math
from dataclasses import dataclass
from enum import Enum
from numbers import Integral, Real
from typing import Optional, Sequence, Union

import numpy as np

from config import SCALE_MAX_VALUES, AnalyzerConfig, SpectrumScale
from frequency_utils import bin_index_to_freq, freq_to_bin_index, round_half_up


class InvalidFrequencyInput(ValueError):
    """Raised when energy_in_range gets something that is not a frequency or band name."""


class InvalidSpectrumInput(ValueError):
    """Raised for empty frames, bad nyquist values or malformed band/group arguments."""


class NamedBand(str, Enum):
    """Predefined frequency ranges accepted by energy_in_range"""
    BASS = "bass"
    LOW_MID = "lowMid"
    MID = "mid"
    HIGH_MID = "highMid"
    TREBLE = "treble"


BAND_RANGES = {
    NamedBand.BASS: (20.0, 140.0),
    NamedBand.LOW_MID: (140.0, 400.0),
    NamedBand.MID: (400.0, 2600.0),
    NamedBand.HIGH_MID: (2600.0, 5200.0),
    NamedBand.TREBLE: (5200.0, 14000.0),
}

DEFAULT_LINEAR_GROUPS = 16
DEFAULT_OCTAVE_DIVISIONS = 3
DEFAULT_MIN_CENTER_FREQ = 15.625

FrequencyInput = Union[float, int, str, NamedBand]


@dataclass(frozen=True)
class FrequencyBand:
    """Contiguous frequency range: lower edge, center and upper edge in Hz"""
    low: float
    ctr: float
    hi: float


def _is_frequency(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def resolve_band(name) -> Optional[tuple[float, float]]:
    """Return the (low, high) pair for a band name, or None if it is not one."""
    if isinstance(name, NamedBand):
        return BAND_RANGES[name]
    if isinstance(name, str):
        try:
            return BAND_RANGES[NamedBand(name)]
        except ValueError:
            return None
    return None


def _running_pair_average(accumulator: Optional[float], value: float) -> float:
    # Not a true mean: every new value weighs as much as all previous ones together.
    if accumulator is None:
        return value
    return (accumulator + value) / 2


class SpectralAggregator:
    """Aggregate measures over the current frame of frequency bins.

    Call ``set_spectrum`` once per frame after the analysis engine has
    refreshed its bins, then query any of the aggregates. ``scale`` tells
    callers what the full-scale magnitude is (see ``max_value``).
    """

    def __init__(
        self,
        bins: Optional[Sequence[float]] = None,
        nyquist: float = 22050.0,
        scale: SpectrumScale = SpectrumScale.BYTE,
    ):
        self.scale = SpectrumScale(scale)
        self.nyquist = float(nyquist)
        self.bins: np.ndarray = np.zeros(0, dtype=np.float64)
        if bins is not None:
            self.set_spectrum(bins)

    @classmethod
    def from_config(cls, config: AnalyzerConfig) -> "SpectralAggregator":
        return cls(nyquist=config.nyquist, scale=config.scale)

    def set_spectrum(self, bins: Sequence[float], nyquist: Optional[float] = None) -> None:
        """Point the aggregator at a freshly analyzed frame."""
        self.bins = np.asarray(bins, dtype=np.float64).reshape(-1)
        if nyquist is not None:
            self.nyquist = float(nyquist)

    @property
    def bin_count(self) -> int:
        return int(self.bins.shape[0])

    @property
    def max_value(self) -> float:
        """Full-scale magnitude of the active representation (255 or 1.0)."""
        return SCALE_MAX_VALUES[self.scale]

    def _require_frame(self) -> None:
        if self.bin_count == 0:
            raise InvalidSpectrumInput("spectrum has no bins; refresh it before aggregating")
        if not (self.nyquist > 0 and math.isfinite(self.nyquist)):
            raise InvalidSpectrumInput(f"nyquist must be a positive frequency, got {self.nyquist!r}")

    # ------------------------------------------------------------------
    # Energy
    # ------------------------------------------------------------------
    def energy_in_range(self, frequency1: FrequencyInput, frequency2: Optional[float] = None) -> float:
        """Energy at one frequency, or the mean energy between two frequencies.

        ``frequency1`` may also be one of the names in ``NamedBand``
        ("bass", "lowMid", "mid", "highMid", "treble"); a name expands to
        its fixed range and any ``frequency2`` is ignored.
        """
        band = resolve_band(frequency1)
        if band is not None:
            frequency1, frequency2 = band
        elif not _is_frequency(frequency1):
            raise InvalidFrequencyInput(f"invalid input for energy_in_range(): {frequency1!r}")

        if frequency2 is not None and not _is_frequency(frequency2):
            raise InvalidFrequencyInput(f"invalid second frequency for energy_in_range(): {frequency2!r}")

        self._require_frame()
        count = self.bin_count

        # A second frequency of 0 counts as absent.
        if not frequency2:
            index = freq_to_bin_index(frequency1, self.nyquist, count)
            return float(self.bins[index])

        if frequency1 > frequency2:
            frequency1, frequency2 = frequency2, frequency1

        low_index = freq_to_bin_index(frequency1, self.nyquist, count)
        high_index = freq_to_bin_index(frequency2, self.nyquist, count)
        return float(np.mean(self.bins[low_index:high_index + 1]))

    def spectral_centroid(self) -> float:
        """Energy-weighted mean frequency of the frame in Hz (0 for silence)."""
        self._require_frame()
        count = self.bin_count

        cumulative_sum = 0.0
        normalization = 0.0
        for index, magnitude in enumerate(self.bins.tolist()):
            cumulative_sum += index * magnitude
            normalization += magnitude

        mean_freq_index = 0.0
        if normalization != 0:
            mean_freq_index = cumulative_sum / normalization

        return mean_freq_index * (self.nyquist / count)

    # ------------------------------------------------------------------
    # Band averages
    # ------------------------------------------------------------------
    def linear_averages(self, group_count: Optional[int] = DEFAULT_LINEAR_GROUPS) -> list[float]:
        """Running pairwise averages of ``group_count`` equal-width bin groups."""
        groups = group_count or DEFAULT_LINEAR_GROUPS
        if not isinstance(groups, Integral) or isinstance(groups, bool):
            raise InvalidSpectrumInput(f"group_count must be a whole number, got {group_count!r}")
        self._require_frame()
        count = self.bin_count
        if groups < 0 or groups > count:
            raise InvalidSpectrumInput(f"group_count must be between 1 and {count}, got {group_count!r}")

        step = count // groups
        averages: list[Optional[float]] = [None] * groups
        group_index = 0

        for spec_index, magnitude in enumerate(self.bins.tolist()):
            averages[group_index] = _running_pair_average(averages[group_index], magnitude)
            # Leftover bins past the last full step stay in the last group
            if spec_index % step == step - 1 and group_index < groups - 1:
                group_index += 1

        return [0.0 if value is None else value for value in averages]

    def log_averages(self, octave_bands: Sequence[FrequencyBand]) -> list[float]:
        """Running pairwise averages of the bins falling in each octave band.

        Bands must be ascending and contiguous, as produced by ``octave_bands``.
        """
        if not octave_bands:
            raise InvalidSpectrumInput("log_averages needs at least one octave band")
        self._require_frame()
        count = self.bin_count
        band_count = len(octave_bands)

        averages: list[Optional[float]] = [None] * band_count
        octave_index = 0

        for spec_index, magnitude in enumerate(self.bins.tolist()):
            spec_freq = round_half_up(bin_index_to_freq(spec_index, self.nyquist, count))

            if spec_freq > octave_bands[octave_index].hi:
                octave_index += 1
                if octave_index >= band_count:
                    raise InvalidSpectrumInput(
                        f"octave bands end at {octave_bands[-1].hi:.1f} Hz but the spectrum "
                        f"reaches {spec_freq} Hz"
                    )

            averages[octave_index] = _running_pair_average(averages[octave_index], magnitude)

        return [0.0 if value is None else value for value in averages]

    def octave_bands(
        self,
        n: Optional[int] = DEFAULT_OCTAVE_DIVISIONS,
        min_center_freq: Optional[float] = DEFAULT_MIN_CENTER_FREQ,
    ) -> list[FrequencyBand]:
        """1/n octave bands from ``min_center_freq`` up to (and past) nyquist."""
        return octave_bands(self.nyquist, n, min_center_freq)


def octave_bands(
    nyquist: float,
    n: Optional[int] = DEFAULT_OCTAVE_DIVISIONS,
    min_center_freq: Optional[float] = DEFAULT_MIN_CENTER_FREQ,
) -> list[FrequencyBand]:
    """Generate 1/n octave bands.

    Centers step by 2^(1/n) from ``min_center_freq``; each band's edges sit
    2^(1/(2n)) either side of its center and every band starts where the
    previous one ended. Generation stops with the first band whose upper
    edge reaches ``nyquist``, which is included. With n=3 and the default
    center this yields 32 bands for a 22050 Hz nyquist.
    """
    divisions = n or DEFAULT_OCTAVE_DIVISIONS
    center = min_center_freq or DEFAULT_MIN_CENTER_FREQ
    if divisions < 0 or center < 0:
        raise InvalidSpectrumInput(f"octave_bands needs positive n and center, got n={n!r}, center={min_center_freq!r}")
    if not (nyquist > 0 and math.isfinite(nyquist)):
        raise InvalidSpectrumInput(f"nyquist must be a positive frequency, got {nyquist!r}")

    half_step = math.pow(2, 1 / (2 * divisions))
    full_step = math.pow(2, 1 / divisions)

    last = FrequencyBand(low=center / half_step, ctr=center, hi=center * half_step)
    bands = [last]

    while last.hi < nyquist:
        new_ctr = last.ctr * full_step
        last = FrequencyBand(low=last.hi, ctr=new_ctr, hi=new_ctr * half_step)
        bands.append(last)

    return bands
