from __future__ import annotations

import importlib
import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv

from club_manager.database.bootstrap import ensure_admin, ensure_default_cash_box
from club_manager.settings import get_settings_module


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    created = ensure_admin(db_config, phone=settings.ADMIN_PHONE, password=settings.ADMIN_PASSWORD)
    box_created = ensure_default_cash_box(db_config)

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(admin {'created' if created else 'exists'}, default cash box {'created' if box_created else 'exists'})"
    )


if __name__ == "__main__":
    main()
