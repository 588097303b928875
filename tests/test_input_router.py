"""Tests for the InputChannelRouter."""

import numpy as np
import pytest

from karaoke_core.audio.router import (
    InputChannel,
    InputChannelRouter,
    SharedCaptureStream,
    make_input_id,
    parse_input_id,
)
from karaoke_core.errors import CaptureUnavailable, PermissionDenied


class TestInputIds:
    """Tests for input id formatting."""

    def test_make_input_id(self):
        assert make_input_id("usb-1", InputChannel.MONO) == "usb-1"
        assert make_input_id("usb-1", "left") == "usb-1:left"
        assert make_input_id("usb-1", InputChannel.RIGHT) == "usb-1:right"

    def test_parse_input_id(self):
        assert parse_input_id("usb-1") == ("usb-1", InputChannel.MONO)
        assert parse_input_id("usb-1:left") == ("usb-1", InputChannel.LEFT)
        assert parse_input_id("hw:0,0:right") == ("hw:0,0", InputChannel.RIGHT)

    def test_parse_keeps_colons_in_device_id(self):
        """Only a trailing channel suffix is split off."""
        assert parse_input_id("hw:1,0") == ("hw:1,0", InputChannel.MONO)


class TestSharedCaptureStream:
    """Tests for SharedCaptureStream reference counting."""

    def test_last_release_stops(self, backend):
        backend.levels["dev"] = (0.1, 0.2)
        shared = SharedCaptureStream("dev", backend.open("dev", 2))
        shared.acquire()

        assert shared.release() is False
        assert shared.stream.stopped is False
        assert shared.release() is True
        assert shared.stream.stopped is True
        assert shared.refcount == 0


class TestInputChannelRouter:
    """Tests for connecting and reading scorable inputs."""

    def test_stereo_channels_share_one_stream(self, router: InputChannelRouter, backend):
        """Left and right of one device open a single capture stream."""
        backend.levels["duo"] = (0.3, 0.5)

        left = router.connect("duo", InputChannel.LEFT)
        right = router.connect("duo", InputChannel.RIGHT)

        assert len(backend.opened) == 1
        assert left.capture is right.capture
        assert router.stream_refcount("duo") == 2

        router.disconnect("duo:left")
        assert router.stream_refcount("duo") == 1
        assert backend.opened[0].stopped is False

        router.disconnect("duo:right")
        assert router.stream_refcount("duo") == 0
        assert backend.opened[0].stopped is True

    def test_reconnect_after_release_opens_new_stream(self, router: InputChannelRouter, backend):
        backend.levels["duo"] = (0.3, 0.5)
        router.connect("duo", "left")
        router.disconnect("duo:left")

        router.connect("duo", "right")

        assert len(backend.opened) == 2
        assert router.stream_refcount("duo") == 1

    def test_connect_is_idempotent(self, router: InputChannelRouter, backend):
        """Connecting the same input twice returns the same input without a new ref."""
        backend.levels["duo"] = (0.3, 0.5)

        first = router.connect("duo", "left")
        second = router.connect("duo", "left")

        assert first is second
        assert router.stream_refcount("duo") == 1
        assert len(backend.opened) == 1

    def test_mono_stream_is_dedicated(self, router: InputChannelRouter, backend):
        """Mono inputs are not registered as shared streams."""
        backend.levels["mic"] = (0.44,)

        scorable = router.connect("mic")

        assert scorable.id == "mic"
        assert router.stream_refcount("mic") == 0
        router.disconnect("mic")
        assert backend.opened[0].stopped is True
        assert router.connected_inputs() == []

    def test_channel_frames(self, router: InputChannelRouter, backend):
        """Left and right pick their channel, mono mixes down."""
        backend.levels["duo"] = (0.2, 0.4)

        left = router.connect("duo", "left")
        right = router.connect("duo", "right")
        mono = router.connect("duo")

        assert np.allclose(left.read_frame(16), 0.2)
        assert np.allclose(right.read_frame(16), 0.4)
        assert np.allclose(mono.read_frame(16), 0.3)
        assert left.read_frame(16).shape == (16,)

    def test_missing_channel_reads_silence(self, router: InputChannelRouter, backend):
        """A right input on a device with one channel gets zeros."""
        backend.levels["single"] = (0.5,)

        right = router.connect("single", "right")

        assert np.all(right.read_frame(32) == 0)

    def test_read_pitch_per_channel(self, router: InputChannelRouter, backend):
        """Each split channel feeds its own tracker."""
        backend.levels["duo"] = (0.44, 0.22)
        router.connect_input_id("duo:left")
        router.connect_input_id("duo:right")

        assert router.read_pitch("duo:left", now_ms=0) == pytest.approx(440.0)
        assert router.read_pitch("duo:right", now_ms=0) == pytest.approx(220.0)
        assert router.tracker("duo:left") is not router.tracker("duo:right")

    def test_read_pitch_unknown_input(self, router: InputChannelRouter):
        assert router.read_pitch("nobody", now_ms=0) == -1

    def test_capture_unavailable_registers_nothing(self, router: InputChannelRouter, backend):
        backend.levels["duo"] = (0.3, 0.5)
        backend.unavailable.add("duo")

        with pytest.raises(CaptureUnavailable):
            router.connect("duo", "left")

        assert router.connected_inputs() == []
        assert router.stream_refcount("duo") == 0
        assert not router.is_connected("duo:left")

    def test_permission_denied_propagates(self, router: InputChannelRouter, backend):
        backend.levels["mic"] = (0.44,)
        backend.denied = True

        with pytest.raises(PermissionDenied):
            router.connect("mic")

    def test_disconnect_all(self, router: InputChannelRouter, backend):
        backend.levels["duo"] = (0.3, 0.5)
        backend.levels["mic"] = (0.44,)
        router.connect("duo", "left")
        router.connect("duo", "right")
        router.connect("mic")

        router.disconnect_all()

        assert router.connected_inputs() == []
        assert all(stream.stopped for stream in backend.opened)

    def test_disconnect_unknown_is_noop(self, router: InputChannelRouter):
        router.disconnect("ghost:left")
        assert router.connected_inputs() == []
