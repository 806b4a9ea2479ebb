from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class ProviderConfig:
    """
    Credentials, endpoints and time budgets for the HTTP providers.

    The taste budget covers every search strategy of one fetch; the maps
    budget applies to each mapping call on its own.
    """

    qloo_api_key: str = os.getenv("QLOO_API_KEY", "")
    qloo_api_url: str = os.getenv("QLOO_API_URL", "https://hackathon.api.qloo.com")
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    google_maps_api_url: str = "https://maps.googleapis.com/maps/api"
    taste_timeout: float = 5.0
    maps_timeout: float = 2.5
    photo_max_width: int = 800
    autocomplete_bias_radius_m: int = 50_000
    user_agent: str = "TasteDiscovery/1.0"


DEFAULT_PROVIDER_CONFIG = ProviderConfig()
