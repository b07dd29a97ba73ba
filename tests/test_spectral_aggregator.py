import unittest

import numpy as np

from config import SpectrumScale
from spectral_aggregator import (
    BAND_RANGES,
    FrequencyBand,
    InvalidFrequencyInput,
    InvalidSpectrumInput,
    NamedBand,
    SpectralAggregator,
    octave_bands,
)


class TestEnergyInRange(unittest.TestCase):
    def setUp(self):
        # nyquist=1000, 10 bins => 100Hz per bin
        self.agg = SpectralAggregator(np.arange(10) * 10.0, nyquist=1000.0)

    def test_single_frequency_returns_one_bin(self):
        self.assertEqual(self.agg.energy_in_range(0), 0.0)
        self.assertEqual(self.agg.energy_in_range(500), 50.0)
        self.assertEqual(self.agg.energy_in_range(900), 90.0)

    def test_single_frequency_rounds_half_up(self):
        self.assertEqual(self.agg.energy_in_range(250), 30.0)
        self.assertEqual(self.agg.energy_in_range(249), 20.0)

    def test_single_frequency_at_nyquist_is_clamped_to_last_bin(self):
        self.assertEqual(self.agg.energy_in_range(1000), 90.0)

    def test_zero_second_frequency_counts_as_absent(self):
        self.assertEqual(self.agg.energy_in_range(500, 0), 50.0)

    def test_range_is_inclusive_mean(self):
        self.assertAlmostEqual(self.agg.energy_in_range(200, 400), 30.0, places=9)

    def test_range_is_order_independent(self):
        for f1, f2 in [(0, 1000), (120, 480), (333, 777), (10, 20)]:
            self.assertEqual(self.agg.energy_in_range(f1, f2), self.agg.energy_in_range(f2, f1))

    def test_invalid_first_argument_raises(self):
        for bad in ("loud", None, True, "100", float("nan"), [100]):
            with self.assertRaises(InvalidFrequencyInput):
                self.agg.energy_in_range(bad)

    def test_invalid_frequency_is_value_error(self):
        with self.assertRaises(ValueError):
            self.agg.energy_in_range("subsonic")

    def test_invalid_second_argument_raises(self):
        with self.assertRaises(InvalidFrequencyInput):
            self.agg.energy_in_range(100, "200")

    def test_empty_spectrum_raises(self):
        with self.assertRaises(InvalidSpectrumInput):
            SpectralAggregator(nyquist=1000.0).energy_in_range(100)


class TestNamedBands(unittest.TestCase):
    def setUp(self):
        bins = (np.arange(1024) * 7) % 256
        self.agg = SpectralAggregator(bins, nyquist=22050.0, scale=SpectrumScale.BYTE)

    def test_named_bands_match_their_frequency_pairs(self):
        for band, (low, high) in BAND_RANGES.items():
            self.assertEqual(self.agg.energy_in_range(band.value), self.agg.energy_in_range(low, high))
            self.assertEqual(self.agg.energy_in_range(band), self.agg.energy_in_range(low, high))

    def test_named_band_ignores_second_frequency(self):
        self.assertEqual(self.agg.energy_in_range("treble", 50), self.agg.energy_in_range(5200, 14000))

    def test_band_table(self):
        self.assertEqual(BAND_RANGES[NamedBand.BASS], (20.0, 140.0))
        self.assertEqual(BAND_RANGES[NamedBand.LOW_MID], (140.0, 400.0))
        self.assertEqual(BAND_RANGES[NamedBand.MID], (400.0, 2600.0))
        self.assertEqual(BAND_RANGES[NamedBand.HIGH_MID], (2600.0, 5200.0))
        self.assertEqual(BAND_RANGES[NamedBand.TREBLE], (5200.0, 14000.0))

    def test_max_value_follows_scale(self):
        self.assertEqual(self.agg.max_value, 255.0)
        self.assertEqual(SpectralAggregator(scale=SpectrumScale.NORMALIZED).max_value, 1.0)


class TestSpectralCentroid(unittest.TestCase):
    def test_silence_has_zero_centroid(self):
        agg = SpectralAggregator(np.zeros(8), nyquist=800.0)
        self.assertEqual(agg.spectral_centroid(), 0.0)

    def test_single_bin_centroid(self):
        bins = np.zeros(8)
        bins[3] = 200.0
        agg = SpectralAggregator(bins, nyquist=800.0)
        self.assertAlmostEqual(agg.spectral_centroid(), 300.0, places=9)

    def test_weighted_mean_of_two_bins(self):
        bins = np.zeros(8)
        bins[2] = 10.0
        bins[4] = 10.0
        agg = SpectralAggregator(bins, nyquist=800.0)
        self.assertAlmostEqual(agg.spectral_centroid(), 300.0, places=9)


class TestLinearAverages(unittest.TestCase):
    def test_running_pairwise_trace(self):
        agg = SpectralAggregator([1, 2, 3, 4, 5, 6, 7, 8], nyquist=800.0)
        # group 0: 1 -> 1.5 -> 2.25 -> 3.125, group 1: 5 -> 5.5 -> 6.25 -> 7.125
        self.assertEqual(agg.linear_averages(2), [3.125, 7.125])

    def test_default_group_count(self):
        agg = SpectralAggregator(np.ones(32), nyquist=800.0)
        self.assertEqual(len(agg.linear_averages()), 16)
        self.assertEqual(len(agg.linear_averages(0)), 16)
        self.assertEqual(len(agg.linear_averages(None)), 16)

    def test_monotonic_input_gives_monotonic_groups(self):
        agg = SpectralAggregator(np.arange(64), nyquist=22050.0)
        groups = agg.linear_averages(8)
        self.assertEqual(len(groups), 8)
        self.assertTrue(all(a <= b for a, b in zip(groups, groups[1:])))

    def test_leftover_bins_fold_into_last_group(self):
        agg = SpectralAggregator(np.arange(10), nyquist=1000.0)
        self.assertEqual(agg.linear_averages(3), [1.25, 4.25, 8.125])

    def test_too_many_groups_raises(self):
        agg = SpectralAggregator(np.arange(8), nyquist=800.0)
        with self.assertRaises(InvalidSpectrumInput):
            agg.linear_averages(9)
        with self.assertRaises(InvalidSpectrumInput):
            agg.linear_averages(-2)

    def test_non_integer_group_count_raises(self):
        agg = SpectralAggregator(np.arange(8), nyquist=800.0)
        for bad in (2.5, "4", True):
            with self.assertRaises(InvalidSpectrumInput):
                agg.linear_averages(bad)


class TestLogAverages(unittest.TestCase):
    def setUp(self):
        # nyquist=800, 8 bins => bin frequencies 0, 100, ..., 700
        self.agg = SpectralAggregator([1, 2, 3, 4, 5, 6, 7, 8], nyquist=800.0)
        self.bands = [
            FrequencyBand(0.0, 100.0, 150.0),
            FrequencyBand(150.0, 300.0, 450.0),
            FrequencyBand(450.0, 600.0, 800.0),
        ]

    def test_running_pairwise_trace(self):
        self.assertEqual(self.agg.log_averages(self.bands), [1.5, 4.25, 7.25])

    def test_unreached_band_reports_zero(self):
        bands = self.bands + [FrequencyBand(800.0, 900.0, 1000.0)]
        self.assertEqual(self.agg.log_averages(bands), [1.5, 4.25, 7.25, 0.0])

    def test_running_out_of_bands_raises(self):
        with self.assertRaises(InvalidSpectrumInput):
            self.agg.log_averages(self.bands[:1])

    def test_empty_band_list_raises(self):
        with self.assertRaises(InvalidSpectrumInput):
            self.agg.log_averages([])

    def test_full_spectrum_with_generated_bands(self):
        agg = SpectralAggregator(np.full(1024, 128.0), nyquist=22050.0)
        bands = agg.octave_bands()
        averages = agg.log_averages(bands)
        self.assertEqual(len(averages), len(bands))
        self.assertTrue(all(v in (0.0, 128.0) for v in averages))
        self.assertEqual(averages[-1], 128.0)


class TestOctaveBands(unittest.TestCase):
    def test_third_octave_bands_to_cd_nyquist(self):
        bands = octave_bands(22050.0, 3, 15.625)

        self.assertEqual(len(bands), 32)
        self.assertEqual(bands[0].ctr, 15.625)
        self.assertAlmostEqual(bands[0].low, 15.625 / 2 ** (1 / 6), places=9)
        for prev, nxt in zip(bands, bands[1:]):
            self.assertLess(prev.ctr, nxt.ctr)
            self.assertEqual(prev.hi, nxt.low)
        self.assertGreaterEqual(bands[-1].hi, 22050.0)
        self.assertLess(bands[-2].hi, 22050.0)

    def test_aggregator_uses_its_nyquist(self):
        agg = SpectralAggregator(nyquist=22050.0)
        self.assertEqual(agg.octave_bands(), octave_bands(22050.0))

    def test_zero_arguments_take_defaults(self):
        self.assertEqual(octave_bands(22050.0, 0, 0), octave_bands(22050.0, 3, 15.625))

    def test_full_octaves(self):
        bands = octave_bands(1000.0, 1, 125.0)
        self.assertEqual([b.ctr for b in bands], [125.0, 250.0, 500.0, 1000.0])

    def test_negative_arguments_raise(self):
        with self.assertRaises(InvalidSpectrumInput):
            octave_bands(22050.0, -3, 15.625)
        with self.assertRaises(InvalidSpectrumInput):
            octave_bands(-1.0)

    def test_bands_are_immutable(self):
        band = octave_bands(22050.0)[0]
        with self.assertRaises(AttributeError):
            band.ctr = 1.0


if __name__ == "__main__":
    unittest.main()
