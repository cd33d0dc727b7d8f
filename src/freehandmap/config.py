"""
Configuration management for the freehand curve engine.

Loads YAML configuration with defaults for every tunable constant. The
reparameterization window and the sliver threshold are empirically tuned,
so they live here rather than as literals in the algorithms.
"""

import os
from dataclasses import asdict, dataclass, field, fields

import yaml


@dataclass
class SimplifyConfig:
    """Configuration for stroke simplification."""
    epsilon: float = 2.0  # world units


@dataclass
class FitConfig:
    """Configuration for cubic bezier fitting."""
    max_squared_error: float = 16.0  # world units squared, ~4px deviation
    reparam_error_factor: float = 4.0
    max_reparam_iterations: int = 4


@dataclass
class FlattenConfig:
    """Configuration for curve flattening."""
    steps_per_segment: int = 16
    linear_epsilon: float = 0.1


@dataclass
class BooleanConfig:
    """Configuration for boolean subtraction."""
    sliver_area_ratio: float = 0.01  # fraction of cell area
    ring_simplify_epsilon: float = 0.1
    rectangle_min_area: float = 1.0  # world units squared


@dataclass
class OverlapConfig:
    """Configuration for the cell/curve merge index."""
    edge_offset_ratio: float = 0.02  # fraction of cell size


@dataclass
class ExportConfig:
    """Configuration for SVG export."""
    stroke_width: float = 1.5
    stroke_color: str = "black"


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class EngineConfig:
    """Complete engine configuration."""
    simplify: SimplifyConfig = field(default_factory=SimplifyConfig)
    fit: FitConfig = field(default_factory=FitConfig)
    flatten: FlattenConfig = field(default_factory=FlattenConfig)
    boolean: BooleanConfig = field(default_factory=BooleanConfig)
    overlap: OverlapConfig = field(default_factory=OverlapConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = EngineConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass, ignoring unknown keys."""
    for section in fields(config):
        values = yaml_data.get(section.name)
        if not isinstance(values, dict):
            continue

        target = getattr(config, section.name)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)

    return config


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = asdict(EngineConfig())

    # file_path has no meaningful default
    yaml_data["tracing"].pop("file_path", None)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
