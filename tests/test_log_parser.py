"""Tests for sample rate extraction from diagnostic messages."""

from purerate.log_parser import (
    RATE_PATTERNS,
    RatePattern,
    extract_candidate_rate,
    rate_from_message,
)


class TestPatterns:
    """Each recognized message shape."""

    def test_audio_capabilities_in_khz(self):
        msg = "audioCapabilities: asbdSampleRate = 96.0 kHz, bitDepth = 24"
        assert rate_from_message(msg) == 96000.0

    def test_audio_capabilities_fractional_khz(self):
        msg = "audioCapabilities: asbdSampleRate = 44.1 kHz"
        assert rate_from_message(msg) == 44100.0

    def test_audio_queue(self):
        msg = "Creating AudioQueue with sampleRate:48000 channels:2"
        assert rate_from_message(msg) == 48000.0

    def test_apple_lossless(self):
        msg = "ACAppleLosslessDecoder Input format: 2 ch, 192000 Hz, 'alac'"
        assert rate_from_message(msg) == 192000.0

    def test_flac_decoder(self):
        msg = "FLACDecoder: sampleRate: 88200, bits: 24"
        assert rate_from_message(msg) == 88200.0

    def test_aac_decoder(self):
        msg = "AACDecoder sampleRate:44100\nframes: 1024"
        assert rate_from_message(msg) == 44100.0

    def test_output_settings_semicolon_terminated(self):
        msg = "outputSettings { sampleRate = 176400; channels = 2 }"
        assert rate_from_message(msg) == 176400.0

    def test_unrelated_message(self):
        assert rate_from_message("Playback started for track 12") is None

    def test_all_anchor_groups_required(self):
        assert rate_from_message("Creating AudioQueue for output") is None


class TestPlausibilityGuard:
    """Values at or below 1000 are rejected where the guard applies."""

    def test_flac_channel_count_rejected(self):
        assert rate_from_message("FLACDecoder sampleRate: 2") is None

    def test_output_settings_at_threshold_rejected(self):
        assert rate_from_message("outputSettings sampleRate = 1000;") is None

    def test_output_settings_just_above_threshold(self):
        assert rate_from_message("outputSettings sampleRate = 1001;") == 1001.0

    def test_audio_queue_has_no_guard(self):
        assert rate_from_message("Creating AudioQueue sampleRate:500") == 500.0


class TestMalformedValues:
    """Unparseable numbers are skipped without raising."""

    def test_non_numeric_value(self):
        assert rate_from_message("Creating AudioQueue sampleRate:unknown") is None

    def test_nan_value(self):
        assert rate_from_message("Creating AudioQueue sampleRate:nan channels:2") is None

    def test_infinite_values(self):
        assert rate_from_message("Creating AudioQueue sampleRate:inf") is None
        msg = "ACAppleLosslessDecoder Input format: 2 ch, -Infinity Hz"
        assert rate_from_message(msg) is None
        assert rate_from_message("audioCapabilities: asbdSampleRate = infinity kHz") is None

    def test_nan_batch_yields_no_candidate(self):
        entries = [
            "Creating AudioQueue sampleRate:44100",
            "Creating AudioQueue with sampleRate:nan channels:2",
        ]
        assert extract_candidate_rate(entries) == 44100.0

    def test_missing_end_marker(self):
        assert rate_from_message("audioCapabilities: asbdSampleRate = 48.0") is None

    def test_first_matching_pattern_decides(self):
        # AudioQueue anchors match first, its value is unreadable, so the
        # FLAC shape later in the same message is not consulted.
        msg = "Creating AudioQueue sampleRate:n/a FLACDecoder sampleRate: 96000"
        assert rate_from_message(msg) is None


class TestExtractCandidateRate:
    """Batch-level resolution."""

    def test_empty_batch(self):
        assert extract_candidate_rate([]) is None

    def test_last_match_wins(self):
        entries = [
            "Creating AudioQueue sampleRate:44100",
            "something unrelated",
            "FLACDecoder sampleRate: 96000",
            "another unrelated line",
        ]
        assert extract_candidate_rate(entries) == 96000.0

    def test_unreadable_late_message_does_not_erase_earlier_match(self):
        entries = [
            "Creating AudioQueue sampleRate:48000",
            "Creating AudioQueue sampleRate:garbage",
        ]
        assert extract_candidate_rate(entries) == 48000.0

    def test_guarded_value_is_skipped(self):
        entries = [
            "outputSettings sampleRate = 88200;",
            "FLACDecoder sampleRate: 2",
        ]
        assert extract_candidate_rate(entries) == 88200.0

    def test_accepts_generator(self):
        entries = (f"Creating AudioQueue sampleRate:{rate}" for rate in (44100, 48000))
        assert extract_candidate_rate(entries) == 48000.0

    def test_custom_pattern_table(self):
        custom = RatePattern(name="custom", anchors=(("rate=",),), start="rate=")
        assert extract_candidate_rate(["rate=22050 ok"], [custom]) == 22050.0

    def test_default_table_has_five_shapes(self):
        assert [p.name for p in RATE_PATTERNS] == [
            "audioCapabilities",
            "AudioQueue",
            "AppleLossless",
            "FLAC/AAC",
            "outputSettings",
        ]
