import json
from datetime import datetime, timezone

from concierge.data.seed_loader import appointment_time, load_seed_data, resolve_seed_path


def test_bundled_seed_file_is_found():
    data = load_seed_data("seed.json")
    assert resolve_seed_path("seed.json").exists()
    assert len(data["faqs"]) == 5
    assert all(faq["keywords"] for faq in data["faqs"])
    assert data["appointments"][0]["service_name"] == "Spa Massage"


def test_missing_seed_file_yields_empty_data(tmp_path):
    assert load_seed_data(str(tmp_path / "absent.json")) == {"faqs": [], "appointments": []}


def test_custom_seed_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({"faqs": [{"question": "Q", "answer": "A", "keywords": ["q"]}]}))
    assert load_seed_data(str(path)) == {
        "faqs": [{"question": "Q", "answer": "A", "keywords": ["q"]}],
        "appointments": [],
    }


def test_appointment_time_from_hour_or_timestamp():
    today = datetime(2025, 8, 2, 9, 30, tzinfo=timezone.utc)
    assert appointment_time({"hour": 16}, today=today) == datetime(2025, 8, 2, 16, 0, tzinfo=timezone.utc)
    assert appointment_time({"appointment_time": "2025-08-03T10:00:00"}) == datetime(
        2025, 8, 3, 10, 0, tzinfo=timezone.utc
    )
