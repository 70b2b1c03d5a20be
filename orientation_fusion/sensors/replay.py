"""Replay of recorded IMU logs into simulated sensors.

Logs are CSV text with one sample per line:

    time_abs,seq,ax,ay,az,gx,gy,gz,mx,my,mz,temp

Lines starting with ``#`` and the column header are ignored. ``time_abs``
is in seconds since the start of the recording.
"""

import logging
import threading
import time
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np

from ..core.errors import ReplayError
from ..core.types import SensorType
from .mock import SimulatedSensor

logger = logging.getLogger(__name__)

LOG_COLUMNS = ("time_abs", "seq", "ax", "ay", "az", "gx", "gy", "gz",
               "mx", "my", "mz", "temp")


@dataclass(frozen=True)
class LogRecord:
    """Single line of an IMU log."""
    time_abs: float
    seq: int
    ax: float
    ay: float
    az: float
    gx: float
    gy: float
    gz: float
    mx: float
    my: float
    mz: float
    temp: float

    @property
    def timestamp_ns(self) -> int:
        """Recording time in nanoseconds."""
        return int(round(self.time_abs * 1e9))


def read_log(path: str) -> List[LogRecord]:
    """Parse an IMU log file.

    Args:
        path: Path to the log.

    Returns:
        Records in file order.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ReplayError: If the log cannot be parsed as numeric columns.
    """
    log_path = Path(path)
    if not log_path.exists():
        raise FileNotFoundError(f"Log file not found: {path}")

    with warnings.catch_warnings():
        # An empty log is valid and yields no records.
        warnings.simplefilter("ignore", UserWarning)
        try:
            data = np.loadtxt(
                log_path,
                delimiter=",",
                comments=("#", LOG_COLUMNS[0]),
                ndmin=2,
                encoding="utf-8",
            )
        except ValueError as e:
            raise ReplayError(f"{path}: {e}") from e

    if data.size and data.shape[1] != len(LOG_COLUMNS):
        raise ReplayError(
            f"{path}: expected {len(LOG_COLUMNS)} fields, got {data.shape[1]}"
        )

    records = [
        LogRecord(
            time_abs=float(row[0]),
            seq=int(row[1]),
            ax=float(row[2]), ay=float(row[3]), az=float(row[4]),
            gx=float(row[5]), gy=float(row[6]), gz=float(row[7]),
            mx=float(row[8]), my=float(row[9]), mz=float(row[10]),
            temp=float(row[11]),
        )
        for row in data
    ]

    logger.info("Loaded %d records from %s", len(records), path)
    return records


class LogReplay:
    """Feeds recorded samples into simulated sensors.

    Each record yields one magnetometer, accelerometer and gyroscope
    sample, in that order, stamped with the record time.
    """

    def __init__(
        self,
        records: List[LogRecord],
        accelerometer: Optional[SimulatedSensor] = None,
        gyroscope: Optional[SimulatedSensor] = None,
        magnetometer: Optional[SimulatedSensor] = None,
        realtime: bool = True,
    ):
        """Initialize replay.

        Args:
            records: Parsed log records.
            accelerometer: Sensor to drive, created if None.
            gyroscope: Sensor to drive, created if None.
            magnetometer: Sensor to drive, created if None.
            realtime: Pace samples by their recorded time deltas.
        """
        self._records = records
        self.accelerometer = accelerometer or SimulatedSensor(SensorType.ACCELEROMETER)
        self.gyroscope = gyroscope or SimulatedSensor(SensorType.GYROSCOPE)
        self.magnetometer = magnetometer or SimulatedSensor(SensorType.MAGNETOMETER)
        self._realtime = realtime
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.replayed = 0

    @classmethod
    def from_file(cls, path: str, realtime: bool = True) -> "LogReplay":
        """Create a replay from a log file."""
        return cls(read_log(path), realtime=realtime)

    @property
    def is_running(self) -> bool:
        """Whether the background replay thread is active."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def duration_s(self) -> float:
        """Time span covered by the records."""
        if len(self._records) < 2:
            return 0.0
        return self._records[-1].time_abs - self._records[0].time_abs

    def run(self) -> int:
        """Replay all records on the calling thread.

        Returns:
            Number of records replayed.
        """
        start_wall = time.monotonic()
        start_log = self._records[0].time_abs if self._records else 0.0

        for record in self._records:
            if self._stop_event.is_set():
                break

            if self._realtime:
                delay = (record.time_abs - start_log) - (time.monotonic() - start_wall)
                if delay > 0 and self._stop_event.wait(delay):
                    break

            ts = record.timestamp_ns
            self.magnetometer.emit(record.mx, record.my, record.mz, timestamp_ns=ts)
            self.accelerometer.emit(record.ax, record.ay, record.az, timestamp_ns=ts)
            self.gyroscope.emit(record.gx, record.gy, record.gz, timestamp_ns=ts)
            self.replayed += 1

        logger.info("Replay finished: %d/%d records", self.replayed, len(self._records))
        return self.replayed

    def start(self) -> None:
        """Replay in a background thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="log-replay", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop a background replay and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for a background replay to finish.

        Returns:
            True if the replay is no longer running.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        return not self.is_running
