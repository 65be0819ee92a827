from __future__ import annotations

import json
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from concierge.utils.config import get_settings


def resolve_seed_path(path: Optional[str] = None) -> Path:
    seed_path = Path(path or get_settings().seed_data_path)
    if not seed_path.is_absolute() and not seed_path.exists():
        seed_path = Path(__file__).resolve().parent / seed_path.name
    return seed_path


def load_seed_data(path: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
    seed_path = resolve_seed_path(path)
    if not seed_path.exists():
        return {"faqs": [], "appointments": []}

    with seed_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return {"faqs": payload.get("faqs", []), "appointments": payload.get("appointments", [])}


def appointment_time(record: Dict[str, Any], today: Optional[datetime] = None) -> datetime:
    """Seeded appointments carry either an ISO timestamp or an hour on the current day."""

    if record.get("appointment_time"):
        moment = datetime.fromisoformat(record["appointment_time"])
        return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
    base = (today or datetime.now(timezone.utc)).date()
    return datetime.combine(base, time(hour=int(record.get("hour", 12))), tzinfo=timezone.utc)
