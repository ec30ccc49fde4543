"""PureRate: keep the output device sample rate in sync with the music player."""
