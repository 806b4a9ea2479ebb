from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineConfig:
    """
    Budgets and caps for the recommendation pipeline.

    All of these are product/ops knobs rather than fixed constants.
    """

    deadline: float = float(os.getenv("PIPELINE_DEADLINE_SECONDS", "6.0"))
    batch_size: int = 3
    max_candidates: int = 8
    max_target: int = 8
    synthesis_max_places: int = 5
    max_results: int = 50
    explained_top_n: int = 3
    cache_max_size: int = 512
    cache_ttl: float = 3600.0


DEFAULT_PIPELINE_CONFIG = PipelineConfig()
