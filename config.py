"""
config.py
Environment-driven settings + logging setup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    db_file: Path
    log_level: str
    company: str
    contact: str
    payment_channels: str
    currency: str
    backup_dir: Path
    at_username: str | None
    at_api_key: str | None
    at_sender_id: str | None

    @property
    def sms_enabled(self) -> bool:
        return bool(self.at_username and self.at_api_key)


def load_settings(env=None) -> Settings:
    env = os.environ if env is None else env
    here = Path(__file__).parent
    return Settings(
        db_file=Path(env.get("ISP_ADMIN_DB", here / "isp_admin.db")),
        log_level=env.get("ISP_ADMIN_LOG_LEVEL", "INFO").upper(),
        company=env.get("ISP_ADMIN_COMPANY", "RAFIQ INTERNET AND CABLES"),
        contact=env.get("ISP_ADMIN_CONTACT", "Muhammad Rafiq - 03142190181"),
        payment_channels=env.get("ISP_ADMIN_PAYMENT_CHANNELS", "Easypaisa / JazzCash: 03142190181"),
        currency=env.get("ISP_ADMIN_CURRENCY", "PKR"),
        backup_dir=Path(env.get("ISP_ADMIN_BACKUP_DIR", here / "backups")),
        at_username=env.get("AFRICASTALKING_USERNAME") or None,
        at_api_key=env.get("AFRICASTALKING_API_KEY") or None,
        at_sender_id=env.get("AFRICASTALKING_SENDER_ID") or None,
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format=LOG_FORMAT)
