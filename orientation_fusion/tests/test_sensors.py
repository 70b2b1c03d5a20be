"""Tests for simulated sensors, the mock device and log replay."""

import time

import pytest
import numpy as np

from orientation_fusion.core.errors import ReplayError, UnsupportedSensorError
from orientation_fusion.core.types import SamplingRate, SensorType
from orientation_fusion.sensors.mock import MockDevice, SimulatedSensor
from orientation_fusion.sensors.replay import LogReplay, read_log

LOG_HEADER = "time_abs,seq,ax,ay,az,gx,gy,gz,mx,my,mz,temp\n"


def write_log(path, rows):
    lines = [LOG_HEADER, "# recorded on bench\n"]
    for i, row in enumerate(rows):
        lines.append(",".join(str(v) for v in [i * 0.01, i] + list(row) + [25.0]) + "\n")
    path.write_text("".join(lines))
    return path


FLAT_NORTH = (0.0, 0.0, 9.81, 0.0, 0.0, 0.0, 0.0, 22.0, -42.0)


class Collector:
    """Listener storing received samples."""

    def __init__(self):
        self.samples = []

    def __call__(self, sample):
        self.samples.append(sample)


class TestSimulatedSensor:
    """Tests for SimulatedSensor class."""

    def test_emit_without_listener(self, accelerometer):
        """Samples are dropped while no listener is registered."""
        assert not accelerometer.emit(0.0, 0.0, 9.81)

    def test_on_and_emit(self, accelerometer):
        """Registered listeners receive timestamped samples."""
        listener = Collector()
        accelerometer.on(SamplingRate.GAME, listener)

        assert accelerometer.emit(1.0, 2.0, 3.0, timestamp_ns=55)
        assert accelerometer.is_registered
        assert accelerometer.rate is SamplingRate.GAME
        sample = listener.samples[0]
        assert sample.timestamp_ns == 55
        assert (sample.x, sample.y, sample.z) == (1.0, 2.0, 3.0)

    def test_default_timestamp_is_monotonic(self, gyroscope):
        """Samples without timestamps use the monotonic clock."""
        listener = Collector()
        gyroscope.on(SamplingRate.FASTEST, listener)
        gyroscope.emit(0.0, 0.0, 0.0)
        gyroscope.emit(0.0, 0.0, 0.0)

        assert listener.samples[1].timestamp_ns >= listener.samples[0].timestamp_ns

    def test_off(self, magnetometer):
        """Unregistered sensors stop delivering."""
        listener = Collector()
        magnetometer.on(SamplingRate.UI, listener)
        magnetometer.off()

        assert not magnetometer.emit(0.0, 22.0, -42.0)
        assert listener.samples == []
        assert magnetometer.rate is None

    def test_unsupported(self):
        """Unsupported sensors refuse registration and range queries."""
        sensor = SimulatedSensor(SensorType.MAGNETOMETER, supported=False)

        assert not sensor.is_supported
        with pytest.raises(UnsupportedSensorError):
            sensor.on(SamplingRate.GAME, Collector())
        with pytest.raises(UnsupportedSensorError):
            sensor.maximum_range

    def test_maximum_range(self):
        """Range defaults per type and can be overridden."""
        assert SimulatedSensor(SensorType.MAGNETOMETER).maximum_range == 4900.0
        assert SimulatedSensor(SensorType.GYROSCOPE, maximum_range=10.0).maximum_range == 10.0


class TestMockDevice:
    """Tests for MockDevice class."""

    def test_step_emits_all_sensors(self, quiet_config):
        """One step yields one sample per sensor."""
        device = MockDevice(quiet_config)
        received = {sensor_type: Collector() for sensor_type in SensorType}
        device.accelerometer.on(SamplingRate.GAME, received[SensorType.ACCELEROMETER])
        device.gyroscope.on(SamplingRate.GAME, received[SensorType.GYROSCOPE])
        device.magnetometer.on(SamplingRate.GAME, received[SensorType.MAGNETOMETER])

        device.step(0.0, 123)

        assert device.sample_count == 1
        for collector in received.values():
            assert len(collector.samples) == 1
            assert collector.samples[0].timestamp_ns == 123

    def test_noise_free_readings(self, quiet_config):
        """Without noise the readings match the ideal device."""
        quiet_config.simulation.yaw_rate_dps = 90.0
        device = MockDevice(quiet_config)
        acc, gyro, mag = Collector(), Collector(), Collector()
        device.accelerometer.on(SamplingRate.GAME, acc)
        device.gyroscope.on(SamplingRate.GAME, gyro)
        device.magnetometer.on(SamplingRate.GAME, mag)

        device.step(1.0, 0)

        np.testing.assert_allclose(acc.samples[0].vector, [0.0, 0.0, 9.81])
        np.testing.assert_allclose(gyro.samples[0].vector, [0.0, 0.0, -np.pi / 2])
        np.testing.assert_allclose(mag.samples[0].vector, [-22.0, 0.0, -42.0], atol=1e-9)

    def test_true_azimuth_wraps(self, quiet_config):
        """Ground truth stays within (-pi, pi]."""
        quiet_config.simulation.yaw_rate_dps = 90.0
        device = MockDevice(quiet_config)

        assert device.true_azimuth(3.0) == pytest.approx(-np.pi / 2)

    def test_seeded_noise_repeatable(self, config):
        """Equal seeds reproduce the same samples."""
        config.simulation.seed = 3
        values = []
        for _ in range(2):
            device = MockDevice(config)
            collector = Collector()
            device.accelerometer.on(SamplingRate.GAME, collector)
            device.step(0.0, 0)
            values.append(collector.samples[0].vector)

        np.testing.assert_array_equal(values[0], values[1])

    def test_open_close(self, quiet_config):
        """The background generator produces samples until closed."""
        quiet_config.simulation.sample_rate_hz = 200.0
        collector = Collector()
        device = MockDevice(quiet_config)
        device.gyroscope.on(SamplingRate.FASTEST, collector)

        with device:
            assert device.is_open
            time.sleep(0.1)

        assert not device.is_open
        count = len(collector.samples)
        assert count > 0
        time.sleep(0.05)
        assert len(collector.samples) == count


class TestReadLog:
    """Tests for log parsing."""

    def test_parses_records(self, tmp_path):
        """Header and comment lines are skipped."""
        path = write_log(tmp_path / "imu.csv", [FLAT_NORTH, FLAT_NORTH])

        records = read_log(str(path))

        assert len(records) == 2
        assert records[1].seq == 1
        assert records[1].timestamp_ns == 10_000_000
        assert records[0].my == 22.0

    def test_missing_file(self, tmp_path):
        """Missing logs raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            read_log(str(tmp_path / "missing.csv"))

    def test_wrong_field_count(self, tmp_path):
        """Logs with the wrong number of columns raise ReplayError."""
        path = tmp_path / "short.csv"
        path.write_text(LOG_HEADER + "0.0,0,1.0,2.0\n")

        with pytest.raises(ReplayError, match="expected 12 fields"):
            read_log(str(path))

    def test_ragged_rows(self, tmp_path):
        """Rows of differing width raise ReplayError."""
        path = write_log(tmp_path / "ragged.csv", [FLAT_NORTH])
        with open(path, "a") as f:
            f.write("0.5,1,1.0,2.0\n")

        with pytest.raises(ReplayError):
            read_log(str(path))

    def test_empty_log(self, tmp_path):
        """A log holding only the header has no records."""
        path = tmp_path / "empty.csv"
        path.write_text(LOG_HEADER)

        assert read_log(str(path)) == []

    def test_bad_number(self, tmp_path):
        """Non-numeric fields raise ReplayError."""
        path = tmp_path / "bad.csv"
        path.write_text("0.0,0,x,0,9.81,0,0,0,0,22,-42,25\n")

        with pytest.raises(ReplayError):
            read_log(str(path))


class TestLogReplay:
    """Tests for LogReplay class."""

    def test_run_emits_in_order(self, tmp_path):
        """Each record feeds magnetometer, accelerometer then gyroscope."""
        path = write_log(tmp_path / "imu.csv", [FLAT_NORTH] * 3)
        replay = LogReplay.from_file(str(path), realtime=False)
        order = []
        replay.magnetometer.on(SamplingRate.GAME, lambda s: order.append("mag"))
        replay.accelerometer.on(SamplingRate.GAME, lambda s: order.append("acc"))
        replay.gyroscope.on(SamplingRate.GAME, lambda s: order.append("gyro"))

        assert replay.run() == 3
        assert order[:3] == ["mag", "acc", "gyro"]
        assert len(order) == 9
        assert replay.duration_s == pytest.approx(0.02)

    def test_background_replay(self, tmp_path):
        """A background replay finishes on its own."""
        path = write_log(tmp_path / "imu.csv", [FLAT_NORTH] * 5)
        replay = LogReplay.from_file(str(path))

        replay.start()

        assert replay.wait(2.0)
        assert replay.replayed == 5

    def test_stop_interrupts(self, tmp_path):
        """Stop ends a realtime replay early."""
        rows = [FLAT_NORTH] * 500
        path = write_log(tmp_path / "long.csv", rows)
        replay = LogReplay.from_file(str(path))

        replay.start()
        time.sleep(0.05)
        replay.stop()

        assert not replay.is_running
        assert replay.replayed < 500
