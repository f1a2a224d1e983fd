"""
detector_config.py

Typed detector parameters read from detector_params.yaml.

Parameter file layout
---------------------
detector:
  max_vibration_pitch: 0.01745   # rad
  max_vibration_yaw: 0.01745     # rad
  max_vibration_height: 0.5      # m
  max_vibration_width: 0.5       # m
  max_vibration_depth: 0.5       # m
  min_timestamp_offset: -0.3     # s, relative to the frame stamp
  max_timestamp_offset: 0.0      # s
  timestamp_sample_len: 0.01     # s, validated but not used for sampling
  max_detection_range: 200.0     # m

Invalid values are corrected once, when the configuration is validated, and
never reach the per-frame geometry.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict

from mirror_roi.utils.config_loader import get_nested_value


logger = logging.getLogger(__name__)

DEFAULT_MAX_DETECTION_RANGE = 200.0
DEFAULT_TIMESTAMP_SAMPLE_LEN = 0.01


@dataclass(frozen=True)
class VibrationConfig:
    """
    Worst-case oscillation of the camera mount relative to the map frame.

    Attributes:
        max_pitch:  Angular amplitude around the lateral axis (rad).
        max_yaw:    Angular amplitude around the vertical axis (rad).
        max_height: Vertical translation amplitude (m).
        max_width:  Lateral translation amplitude (m).
        max_depth:  Longitudinal translation amplitude (m).
    """
    max_pitch:  float = 0.0
    max_yaw:    float = 0.0
    max_height: float = 0.0
    max_width:  float = 0.0
    max_depth:  float = 0.0

    @classmethod
    def zero(cls) -> 'VibrationConfig':
        return cls()


@dataclass(frozen=True)
class DetectorConfig:
    max_vibration_pitch:  float = 0.0
    max_vibration_yaw:    float = 0.0
    max_vibration_height: float = 0.0
    max_vibration_width:  float = 0.0
    max_vibration_depth:  float = 0.0
    min_timestamp_offset: float = 0.0
    max_timestamp_offset: float = 0.0
    timestamp_sample_len: float = DEFAULT_TIMESTAMP_SAMPLE_LEN
    max_detection_range:  float = DEFAULT_MAX_DETECTION_RANGE

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'DetectorConfig':
        """
        Build a configuration from a parsed parameter file.

        The ``detector`` section is used when present, otherwise the keys
        are read from the top level. Unknown keys are ignored, missing keys
        take their defaults. No validation is done here.
        """
        section = get_nested_value(config, 'detector', config) if config else {}
        names = {f.name for f in dataclasses.fields(cls)}
        values = {key: float(value) for key, value in section.items() if key in names}
        return cls(**values)

    def validate(self) -> 'DetectorConfig':
        """
        Return a copy with invalid values replaced by safe defaults.

        - max_detection_range <= 0   -> 200
        - timestamp_sample_len <= 0  -> 0.01
        - max_timestamp_offset < min_timestamp_offset -> both set to 0
          (equal offsets are allowed)
        """
        logger.info(
            "Config values: max_vibration_pitch: %f, max_vibration_yaw: %f, "
            "max_vibration_height: %f, max_vibration_width: %f, max_vibration_depth: %f, "
            "min_timestamp_offset: %f, max_timestamp_offset: %f, timestamp_sample_len: %f, "
            "max_detection_range: %f",
            self.max_vibration_pitch, self.max_vibration_yaw, self.max_vibration_height,
            self.max_vibration_width, self.max_vibration_depth, self.min_timestamp_offset,
            self.max_timestamp_offset, self.timestamp_sample_len, self.max_detection_range,
        )

        corrections = {}
        if self.max_detection_range <= 0:
            logger.error("Invalid param max_detection_range = %s, set to default value = %s",
                         self.max_detection_range, DEFAULT_MAX_DETECTION_RANGE)
            corrections['max_detection_range'] = DEFAULT_MAX_DETECTION_RANGE
        if self.timestamp_sample_len <= 0:
            logger.error("Invalid param timestamp_sample_len = %s, set to default value = %s",
                         self.timestamp_sample_len, DEFAULT_TIMESTAMP_SAMPLE_LEN)
            corrections['timestamp_sample_len'] = DEFAULT_TIMESTAMP_SAMPLE_LEN
        if self.max_timestamp_offset < self.min_timestamp_offset:
            logger.error("max_timestamp_offset < min_timestamp_offset. Set both to 0")
            corrections['min_timestamp_offset'] = 0.0
            corrections['max_timestamp_offset'] = 0.0

        return dataclasses.replace(self, **corrections)

    @property
    def vibration(self) -> VibrationConfig:
        return VibrationConfig(
            max_pitch=self.max_vibration_pitch,
            max_yaw=self.max_vibration_yaw,
            max_height=self.max_vibration_height,
            max_width=self.max_vibration_width,
            max_depth=self.max_vibration_depth,
        )
