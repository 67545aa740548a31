from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .clustering import BASELINE_BLOCK_OPEN, BASELINE_MODES, DEFAULT_GAP_TOLERANCE
from .raster import DEFAULT_SCALES, normalize_scales
from .utils import load_json


@dataclass(frozen=True)
class EngineConfig:
    clustering: dict[str, Any] = field(default_factory=dict)
    raster: dict[str, Any] = field(default_factory=dict)
    markup: dict[str, Any] = field(default_factory=dict)
    pipeline: dict[str, Any] = field(default_factory=dict)

    @property
    def gap_tolerance(self) -> float:
        return float(self.clustering.get("gap_tolerance", DEFAULT_GAP_TOLERANCE))

    @property
    def baseline_mode(self) -> str:
        mode = str(self.clustering.get("baseline_mode", BASELINE_BLOCK_OPEN))
        if mode not in BASELINE_MODES:
            raise ValueError(f"clustering.baseline_mode must be one of {BASELINE_MODES}: {mode}")
        return mode

    @property
    def scales(self) -> tuple[float, ...]:
        return normalize_scales(self.raster.get("scales", DEFAULT_SCALES))

    @property
    def transparent(self) -> bool:
        return bool(self.raster.get("transparent", False))

    @property
    def concurrency(self) -> int:
        return max(1, int(self.pipeline.get("concurrency", 1)))


def default_config() -> EngineConfig:
    return EngineConfig()


def load_config(config_path: str | Path | None) -> EngineConfig:
    if config_path is None or not Path(config_path).exists():
        return default_config()
    data = load_json(config_path)
    return EngineConfig(
        clustering=data.get("clustering", {}),
        raster=data.get("raster", {}),
        markup=data.get("markup", {}),
        pipeline=data.get("pipeline", {}),
    )
