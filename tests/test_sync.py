# tests/test_sync.py
import pytest
import numpy as np
from mea_ds.config import SyncConfig
from mea_ds.data.models import SpikeChannel, TrialWindow
from mea_ds.data.sync import SyncExtractor
from mea_ds.exceptions import AlignmentError, ConfigurationError
from mea_ds.validation import validate_windows

@pytest.fixture
def extractor():
    return SyncExtractor(SyncConfig(first_pulse_threshold=5.0, last_pulse_threshold=40.0))

class TestSyncExtractor:
    def test_basic_windows(self, extractor):
        windows = extractor.extract(np.array([10., 20., 30.]), np.array([12., 22., 32.]))
        assert windows == [TrialWindow(10., 12.), TrialWindow(20., 22.), TrialWindow(30., 32.)]

    def test_accepts_spike_channels(self, extractor):
        a = SpikeChannel('TTL_A', [10., 20.])
        b = SpikeChannel('TTL_B', [12., 22.])
        assert len(extractor.extract(a, b)) == 2

    def test_pulses_before_first_threshold_are_ignored(self, extractor):
        windows = extractor.extract(np.array([1., 10., 20.]), np.array([2., 12., 22.]))
        assert [w.onset for w in windows] == [10., 20.]

    def test_pulses_after_last_threshold_are_ignored(self, extractor):
        windows = extractor.extract(np.array([10., 20., 50.]), np.array([12., 22., 52.]))
        assert [w.offset for w in windows] == [12., 22.]

    def test_offset_is_last_pulse_before_next_onset(self, extractor):
        """Several offset-channel pulses per trial resolve to the last one."""
        windows = extractor.extract(np.array([10., 20.]), np.array([11., 11.5, 12., 21., 22.]))
        assert windows == [TrialWindow(10., 12.), TrialWindow(20., 22.)]

    def test_unsorted_pulses_are_sorted(self, extractor):
        windows = extractor.extract(np.array([20., 10.]), np.array([22., 12.]))
        assert windows == [TrialWindow(10., 12.), TrialWindow(20., 22.)]

    def test_windows_are_strictly_increasing(self, extractor):
        onsets = np.arange(10., 38., 3.)
        windows = extractor.extract(onsets, onsets + 2.)
        flat = np.array(windows).reshape(-1)
        assert np.all(np.diff(flat) > 0)

    def test_count_mismatch_raises(self, extractor):
        with pytest.raises(AlignmentError, match="Expected 4 trial windows, found 3"):
            extractor.extract(np.array([10., 20., 30.]), np.array([12., 22., 32.]), n_trials=4)

    def test_missing_offset_stops_extraction(self, extractor):
        """A trial without an offset pulse is not silently skipped or padded."""
        windows = extractor.extract(np.array([10., 20., 30.]), np.array([12., 32.]))
        assert len(windows) == 1
        with pytest.raises(AlignmentError):
            extractor.extract(np.array([10., 20., 30.]), np.array([12., 32.]), n_trials=3)

    def test_no_pulses(self, extractor):
        assert extractor.extract(np.array([]), np.array([])) == []

    def test_invalid_thresholds_raise(self):
        with pytest.raises(ConfigurationError):
            SyncExtractor(SyncConfig(first_pulse_threshold=10.0, last_pulse_threshold=5.0))


class TestValidateWindows:
    def test_valid(self):
        validate_windows([(0., 1.), (2., 3.)], n_trials=2)

    def test_wrong_count(self):
        windows = [(float(i), i + 0.5) for i in range(119)]
        with pytest.raises(AlignmentError, match="Expected 120 trial windows, found 119"):
            validate_windows(windows, n_trials=120)

    def test_overlapping(self):
        with pytest.raises(AlignmentError, match="overlaps"):
            validate_windows([(0., 2.), (1., 3.)])

    def test_empty_window(self):
        with pytest.raises(AlignmentError, match="not before"):
            validate_windows([(1., 1.)])
