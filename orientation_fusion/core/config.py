"""Configuration management for orientation sensor fusion."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import os

import yaml

from .types import SamplingRate

CONFIG_ENV_VAR = "ORIENTATION_FUSION_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "default.yaml"


@dataclass
class FusionConfig:
    """Complementary filter configuration."""
    rate: str = "GAME"
    filter_coefficient: float = 0.98
    epsilon: float = 1e-9

    @property
    def sampling_rate(self) -> SamplingRate:
        """Configured rate as a SamplingRate member."""
        return SamplingRate.parse(self.rate)


@dataclass
class DispatchConfig:
    """Per-axis dispatch tolerances in degrees."""
    azimuth_tolerance_deg: float = 0.0
    pitch_tolerance_deg: float = 0.0
    roll_tolerance_deg: float = 0.0

    @property
    def tolerances(self) -> tuple:
        """Tolerances as (azimuth, pitch, roll)."""
        return (
            self.azimuth_tolerance_deg,
            self.pitch_tolerance_deg,
            self.roll_tolerance_deg,
        )


@dataclass
class AccelerometerConfig:
    """Accelerometer sensor configuration."""
    range_g: float = 16.0
    gravity_nominal: float = 9.81
    gravity_tolerance: float = 2.0


@dataclass
class GyroscopeConfig:
    """Gyroscope sensor configuration."""
    range_dps: float = 2000.0


@dataclass
class MagnetometerSensorConfig:
    """Magnetometer sensor configuration."""
    range_ut: float = 4900.0
    min_field_ut: float = 20.0
    max_field_ut: float = 100.0


@dataclass
class SensorConfig:
    """Sensor ranges and plausibility thresholds."""
    accelerometer: AccelerometerConfig = field(default_factory=AccelerometerConfig)
    gyroscope: GyroscopeConfig = field(default_factory=GyroscopeConfig)
    magnetometer: MagnetometerSensorConfig = field(default_factory=MagnetometerSensorConfig)


@dataclass
class SimulationConfig:
    """Synthetic device used by the mock sensors."""
    yaw_rate_dps: float = 10.0
    sample_rate_hz: float = 100.0
    acc_noise: float = 0.02
    gyro_noise: float = 0.001
    mag_noise: float = 0.5
    gyro_bias: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    magnetic_field_ut: List[float] = field(default_factory=lambda: [0.0, 22.0, -42.0])
    seed: Optional[int] = None


@dataclass
class MonitoringConfig:
    """Fusion tick monitoring configuration."""
    window_size: int = 500
    log_interval_s: float = 10.0
    late_tick_ms: float = 5.0


@dataclass
class Config:
    """Complete configuration for orientation sensor fusion."""
    fusion: FusionConfig = field(default_factory=FusionConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    sensor: SensorConfig = field(default_factory=SensorConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, the
            ORIENTATION_FUSION_CONFIG environment variable is used, then
            the packaged default.

    Returns:
        Configuration object with all settings.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        ValueError: If the file contains invalid values.
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            config_path = env_path
        elif DEFAULT_CONFIG_PATH.exists():
            config_path = str(DEFAULT_CONFIG_PATH)
        else:
            return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {config_path}")

    return _build_config(data)


def _build_config(data: dict) -> Config:
    """Build Config object from dictionary."""
    try:
        fusion = FusionConfig(**data.get("fusion", {}))
        dispatch = DispatchConfig(**data.get("dispatch", {}))

        sensor_data = data.get("sensor", {})
        sensor = SensorConfig(
            accelerometer=AccelerometerConfig(**sensor_data.get("accelerometer", {})),
            gyroscope=GyroscopeConfig(**sensor_data.get("gyroscope", {})),
            magnetometer=MagnetometerSensorConfig(**sensor_data.get("magnetometer", {})),
        )

        simulation = SimulationConfig(**data.get("simulation", {}))
        monitoring = MonitoringConfig(**data.get("monitoring", {}))
    except TypeError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    config = Config(
        fusion=fusion,
        dispatch=dispatch,
        sensor=sensor,
        simulation=simulation,
        monitoring=monitoring,
    )
    _check_config(config)
    return config


def _check_config(config: Config) -> None:
    """Reject values the engine cannot run with."""
    SamplingRate.parse(config.fusion.rate)

    if not 0.0 <= config.fusion.filter_coefficient <= 1.0:
        raise ValueError(
            f"filter_coefficient must be within [0, 1], "
            f"got {config.fusion.filter_coefficient}"
        )

    for tolerance in config.dispatch.tolerances:
        if tolerance < 0:
            raise ValueError(f"Dispatch tolerances must be non-negative, got {tolerance}")

    if config.simulation.sample_rate_hz <= 0:
        raise ValueError("simulation.sample_rate_hz must be positive")

    if config.monitoring.window_size <= 0:
        raise ValueError("monitoring.window_size must be positive")
