"""Seed reference data: default complaint categories and SLA policies.

Idempotent; existing rows (matched by name / priority) are left untouched.
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import AsyncSessionLocal
from app.models.category import Category
from app.models.sla_policy import SlaPolicy

logger = logging.getLogger(__name__)

# (name, description, color, icon)
DEFAULT_CATEGORIES = [
    ("Academic", "Courses, grading, timetables and faculty", "#3B82F6", "book-open"),
    ("Examination", "Exam schedules, results and re-evaluation", "#8B5CF6", "clipboard-check"),
    ("Hostel", "Rooms, maintenance and hostel staff", "#F59E0B", "home"),
    ("Infrastructure", "Classrooms, labs, Wi-Fi and campus facilities", "#10B981", "building"),
    ("Library", "Books, access and library services", "#06B6D4", "library"),
    ("Fees & Finance", "Fee payments, refunds and scholarships", "#EF4444", "wallet"),
    ("Transport", "Campus buses and parking", "#F97316", "bus"),
    ("Other", "Anything that does not fit another category", "#6B7280", "help-circle"),
]


async def seed_categories(db: AsyncSession) -> int:
    created = 0
    for name, description, color, icon in DEFAULT_CATEGORIES:
        existing = await db.execute(select(Category).where(Category.name == name))
        if existing.scalars().first() is not None:
            logger.info("Category already exists: %s, skipping", name)
            continue
        db.add(Category(name=name, description=description, color=color, icon=icon, is_active=True))
        created += 1
        logger.info("Seeded category: %s", name)
    await db.commit()
    return created


async def seed_sla_policies(db: AsyncSession) -> int:
    """One policy per priority, using the configured default hours."""
    created = 0
    for priority, resolution_hours in settings.SLA_DEFAULT_RESOLUTION_HOURS.items():
        existing = await db.execute(select(SlaPolicy).where(SlaPolicy.priority == priority))
        if existing.scalars().first() is not None:
            logger.info("SLA policy already exists for %s, skipping", priority)
            continue
        db.add(
            SlaPolicy(
                name=f"{priority.capitalize()} priority",
                priority=priority,
                response_hours=settings.SLA_DEFAULT_RESPONSE_HOURS[priority],
                resolution_hours=resolution_hours,
                is_active=True,
            )
        )
        created += 1
        logger.info("Seeded SLA policy: %s -> %dh", priority, resolution_hours)
    await db.commit()
    return created


async def run_seed() -> None:
    async with AsyncSessionLocal() as db:
        await seed_categories(db)
        await seed_sla_policies(db)
    logger.info("Seeding complete.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_seed())
