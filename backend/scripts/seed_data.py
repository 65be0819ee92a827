from __future__ import annotations

import asyncio
import logging

from sqlalchemy import delete

from concierge.data.seed_loader import appointment_time, load_seed_data, resolve_seed_path
from concierge.db.database import async_session_factory, create_all
from concierge.models import Appointment, HotelFAQ

logger = logging.getLogger(__name__)


async def seed() -> None:
    seed_path = resolve_seed_path()
    if not seed_path.exists():
        raise FileNotFoundError(f"Seed data file not found: {seed_path}")

    payload = load_seed_data(str(seed_path))
    await create_all()

    async with async_session_factory() as session:
        # FAQs and appointments are reference data, replaced wholesale
        await session.execute(delete(HotelFAQ))
        await session.execute(delete(Appointment))

        session.add_all(
            HotelFAQ(
                question=record["question"],
                answer=record["answer"],
                keywords=[keyword.lower() for keyword in record.get("keywords", [])],
            )
            for record in payload["faqs"]
        )
        session.add_all(
            Appointment(
                session_id=record["session_id"],
                service_name=record["service_name"],
                appointment_time=appointment_time(record),
                details=record.get("details"),
            )
            for record in payload["appointments"]
        )
        await session.commit()

    logger.info(
        "Seeded reference data",
        extra={"faqs": len(payload["faqs"]), "appointments": len(payload["appointments"])},
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())
