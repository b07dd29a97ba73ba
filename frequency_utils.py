import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +inf (JavaScript Math.round)."""
    return int(math.floor(value + 0.5))


def freq_to_bin_index(freq: float, nyquist: float, bin_count: int) -> int:
    """Map a frequency in Hz to the nearest bin index, clamped to the spectrum."""
    if bin_count <= 0:
        return 0
    index = round_half_up((freq / nyquist) * bin_count)
    return max(0, min(bin_count - 1, index))


def bin_index_to_freq(index: int, nyquist: float, bin_count: int) -> float:
    """Lower-edge frequency in Hz of bin ``index``."""
    if bin_count <= 0:
        return 0.0
    return index * nyquist / bin_count


def map_range(num: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    return (num - in_min) * (out_max - out_min) / (in_max - in_min) + out_min
