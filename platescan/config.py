from __future__ import annotations

import os
from pathlib import Path
from typing import List


def _env_flag(name: str, default: str = "") -> bool:
    return (os.environ.get(name) or default).strip() in {"1", "true", "True", "yes"}


class Settings:
    """Centralized configuration for the PlateScan backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("PLATESCAN_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("PLATESCAN_DB_PATH") or (self.data_root / "platescan.db")
        ).expanduser()
        # In production you MUST set PLATESCAN_JWT_SECRET.
        self.jwt_secret: str = os.environ.get("PLATESCAN_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("PLATESCAN_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = _env_flag("PLATESCAN_COOKIE_SECURE")

        # ---- AI / vision providers ----
        self.openai_api_key: str | None = os.environ.get("OPENAI_API_KEY")
        self.openai_base_url: str = os.environ.get(
            "OPENAI_BASE_URL", "https://api.openai.com/v1"
        )
        self.openai_model: str = os.environ.get("PLATESCAN_OPENAI_MODEL", "gpt-4o-mini")
        self.openai_timeout: float = float(os.environ.get("PLATESCAN_OPENAI_TIMEOUT") or "30")
        self.vision_api_key: str | None = os.environ.get("GOOGLE_VISION_API_KEY")
        self.vision_url: str = os.environ.get(
            "PLATESCAN_VISION_URL", "https://vision.googleapis.com/v1/images:annotate"
        )
        self.vision_timeout: float = float(os.environ.get("PLATESCAN_VISION_TIMEOUT") or "15")

        # ---- Nutrition databases ----
        self.usda_api_key: str | None = os.environ.get("USDA_API_KEY")
        self.off_base_url: str = os.environ.get(
            "PLATESCAN_OFF_BASE_URL", "https://world.openfoodfacts.org"
        ).rstrip("/")
        self.usda_base_url: str = os.environ.get(
            "PLATESCAN_USDA_BASE_URL", "https://api.nal.usda.gov/fdc/v1"
        ).rstrip("/")
        self.http_timeout: float = float(os.environ.get("PLATESCAN_HTTP_TIMEOUT") or "10")
        self.user_agent: str = os.environ.get(
            "PLATESCAN_USER_AGENT", "PlateScan/1.0 (nutrition tracking app)"
        )

        # ---- Pipeline knobs ----
        self.portion_source_timeout: float = float(
            os.environ.get("PLATESCAN_PORTION_TIMEOUT") or "3"
        )
        self.portion_detection_enabled: bool = _env_flag("PLATESCAN_PORTION_ENABLED", "1")
        self.detect_mode: str = (os.environ.get("PLATESCAN_DETECT_MODE") or "GPT_ONLY").strip().upper()
        self.safe_detect: bool = _env_flag("PLATESCAN_SAFE_DETECT")
        self.portion_strict: bool = _env_flag("PLATESCAN_PORTION_STRICT")
        self.nutrition_store_capacity: int = int(
            os.environ.get("PLATESCAN_STORE_CAPACITY") or "200"
        )
        self.vault_ttl_days: int = int(os.environ.get("PLATESCAN_VAULT_TTL_DAYS") or "180")
        self.max_image_bytes: int = int(os.environ.get("PLATESCAN_MAX_IMAGE_BYTES") or "4000000")

        cors = os.environ.get("PLATESCAN_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
