"""
spectrabeat - Adaptive Peak Detector
Frame-synchronous onset detector driven by one normalized band energy per frame.
"""

from typing import Any, Callable, Optional

from config import CUTOFF_MULTIPLIER, DECAY_RATE, PeakDetectConfig
from logging_utils import log_event

PeakCallback = Callable[[float, Any], None]


class AdaptivePeakDetector:
    """
    Detects sharp rises in energy above a self-adjusting cutoff.

    A frame is a peak when its energy is above the adaptive cutoff, above
    the hard ``threshold`` and higher than the previous frame's. On a peak
    the cutoff jumps to ``energy * CUTOFF_MULTIPLIER``; it stays there for
    ``frames_per_peak`` quiet frames and then decays by ``DECAY_RATE`` per
    frame, never below ``threshold``.

    Drive it once per frame with ``update()`` (or ``update_from_spectrum()``
    after the aggregator has fresh bins). Not thread-safe; callbacks run
    synchronously and must not call ``update()`` on the same detector.
    """
    __slots__ = ('low_freq', 'high_freq', 'threshold', 'frames_per_peak',
                 'decay_rate', 'cutoff_multiplier',
                 '_cutoff', '_energy', '_previous_energy', '_current_value',
                 '_frames_since_last_peak', '_is_detected',
                 '_callback', '_callback_value', '_updating')

    def __init__(self, low_freq: float = 40.0, high_freq: float = 20000.0,
                 threshold: float = 0.35, frames_per_peak: int = 20):
        self.low_freq = low_freq
        self.high_freq = high_freq
        self.threshold = threshold
        self.frames_per_peak = frames_per_peak
        self.decay_rate = DECAY_RATE
        self.cutoff_multiplier = CUTOFF_MULTIPLIER

        self._callback: Optional[PeakCallback] = None
        self._callback_value: Any = None
        self._updating = False
        self.reset()

    @classmethod
    def from_config(cls, config: PeakDetectConfig) -> "AdaptivePeakDetector":
        return cls(
            low_freq=config.low_freq,
            high_freq=config.high_freq,
            threshold=config.threshold,
            frames_per_peak=config.frames_per_peak,
        )

    def reset(self) -> None:
        """Return to the freshly constructed state. The callback stays registered."""
        self._cutoff = 0.0
        self._energy = 0.0
        self._previous_energy = 0.0
        self._current_value = 0.0
        self._frames_since_last_peak = 0
        self._is_detected = False

    @property
    def cutoff(self) -> float:
        return self._cutoff

    @property
    def energy(self) -> float:
        return self._energy

    @property
    def previous_energy(self) -> float:
        return self._previous_energy

    @property
    def current_value(self) -> float:
        return self._current_value

    @property
    def frames_since_last_peak(self) -> int:
        return self._frames_since_last_peak

    @property
    def is_detected(self) -> bool:
        return self._is_detected

    def on_peak(self, callback: Optional[PeakCallback], value: Any = None) -> None:
        """Register ``callback(energy, value)`` for detected peaks, replacing any previous one."""
        self._callback = callback
        self._callback_value = value

    def update(self, energy_sample: float) -> None:
        """Feed this frame's normalized (0-1) energy."""
        if self._updating:
            raise RuntimeError("AdaptivePeakDetector.update() called from its own peak callback")

        nrg = self._energy = float(energy_sample)

        if nrg > self._cutoff and nrg > self.threshold and nrg - self._previous_energy > 0:
            self._is_detected = True
            log_event("DEBUG", "PeakDetect", "Peak detected",
                      energy=f"{nrg:.4f}", cutoff=f"{self._cutoff:.4f}",
                      frames_since=self._frames_since_last_peak)

            # debounce
            self._cutoff = nrg * self.cutoff_multiplier
            self._frames_since_last_peak = 0
        else:
            self._is_detected = False
            if self._frames_since_last_peak <= self.frames_per_peak:
                self._frames_since_last_peak += 1
            else:
                self._cutoff = max(self._cutoff * self.decay_rate, self.threshold)

        self._current_value = nrg
        self._previous_energy = nrg

        # state is final before the callback runs
        if self._is_detected and self._callback is not None:
            self._updating = True
            try:
                self._callback(nrg, self._callback_value)
            finally:
                self._updating = False

    def update_from_spectrum(self, aggregator) -> float:
        """Update from the aggregator's current frame; returns the normalized energy used."""
        raw = aggregator.energy_in_range(self.low_freq, self.high_freq)
        nrg = raw / aggregator.max_value
        self.update(nrg)
        return nrg
