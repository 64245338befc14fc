from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional


class Settings:
    """Centralized configuration for the catlog backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("CATLOG_DATA_ROOT") or data_root_default
        ).expanduser()
        self.db_path: Path = Path(
            os.environ.get("CATLOG_DB_PATH") or (self.data_root / "catlog.db")
        ).expanduser()
        # Empty means "whatever the host considers local time".
        self.timezone: Optional[str] = (os.environ.get("CATLOG_TIMEZONE") or "").strip() or None

        # ---- Daily log defaults ----
        self.soft_food_target_grams: int = int(
            os.environ.get("CATLOG_SOFT_FOOD_TARGET_GRAMS") or "300"
        )
        self.max_cough_count: int = int(os.environ.get("CATLOG_MAX_COUGH_COUNT") or "100")
        self.asthma_med_dosage_puffs: int = int(
            os.environ.get("CATLOG_ASTHMA_MED_DOSAGE_PUFFS") or "3"
        )
        self.strict_invariants: bool = (os.environ.get("CATLOG_STRICT_INVARIANTS") or "").strip() in {
            "1",
            "true",
            "True",
        }

        # Single-user app: one shared key instead of accounts.
        self.api_key: Optional[str] = os.environ.get("CATLOG_API_KEY") or None

        cors = os.environ.get("CATLOG_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
