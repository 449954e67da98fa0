from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent


@dataclass(slots=True)
class Settings:
    policy_file: Path
    templates_dir: Path
    log_level: str
    output_format: str


@lru_cache
def get_settings() -> Settings:
    policy_file = Path(os.getenv("LICENSE_POLICY_FILE", PACKAGE_DIR / "license.json"))
    templates_dir = Path(os.getenv("TEMPLATE_DIR", PACKAGE_DIR / "templates"))

    return Settings(
        policy_file=policy_file,
        templates_dir=templates_dir,
        log_level=os.getenv("LOG_LEVEL", "WARNING").strip().upper(),
        output_format=os.getenv("OUTPUT_FORMAT", "txt").strip().lower(),
    )
