"""Dev seed: reference data, demo accounts and a starter set of assignment rules.

Idempotent: checks for existing records before inserting.
Run: docker exec cms-backend-1 python scripts/seed.py
"""
import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.core.seed import seed_categories, seed_sla_policies
from app.db.session import AsyncSessionLocal, engine
from app.models.assignment_rule import AssignmentRule
from app.models.category import Category
from app.models.user import User

DEMO_PASSWORD = "changeme123"

# (email, name, role, department)
DEMO_USERS = [
    ("admin@campus.example.edu", "Registrar Office", "ADMIN", "Administration"),
    ("hostel.warden@campus.example.edu", "Hostel Warden", "ADMIN", "Hostel"),
    ("it.support@campus.example.edu", "IT Support", "ADMIN", "IT"),
    ("student@campus.example.edu", "Demo Student", "STUDENT", "Computer Science"),
]


# ─── Upsert helpers ───

async def _upsert_user(db: AsyncSession, email: str, name: str, role: str, department: str) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if user:
        print(f"  [skip] User {email}")
        return user
    user = User(
        email=email,
        name=name,
        password_hash=hash_password(DEMO_PASSWORD),
        role=role,
        department=department,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    print(f"  [add]  User {email} ({role})")
    return user


async def _upsert_rule(
    db: AsyncSession, name: str, priority: int, conditions: dict, assignee: User, author: User
) -> None:
    result = await db.execute(select(AssignmentRule).where(AssignmentRule.name == name))
    if result.scalars().first():
        print(f"  [skip] Rule {name}")
        return
    db.add(
        AssignmentRule(
            name=name,
            priority=priority,
            is_active=True,
            conditions=conditions,
            assigned_to=assignee.id,
            created_by=author.id,
        )
    )
    print(f"  [add]  Rule {name} -> {assignee.email}")


async def _category_id(db: AsyncSession, name: str) -> str | None:
    result = await db.execute(select(Category).where(Category.name == name))
    category = result.scalars().first()
    return str(category.id) if category else None


# ─── Main ───

async def seed() -> None:
    async with AsyncSessionLocal() as db:
        await seed_categories(db)
        await seed_sla_policies(db)

        users = {}
        for email, name, role, department in DEMO_USERS:
            users[email] = await _upsert_user(db, email, name, role, department)
        admin = users["admin@campus.example.edu"]
        warden = users["hostel.warden@campus.example.edu"]
        it_support = users["it.support@campus.example.edu"]

        hostel_id = await _category_id(db, "Hostel")
        await _upsert_rule(
            db, "Urgent hostel issues", 100,
            {"category_id": hostel_id, "priority": "urgent"}, warden, admin,
        )
        await _upsert_rule(db, "Hostel", 50, {"category_id": hostel_id}, warden, admin)
        await _upsert_rule(
            db, "Network and Wi-Fi", 40,
            {"keywords": ["wifi", "wi-fi", "internet", "network"]}, it_support, admin,
        )
        await _upsert_rule(db, "Catch-all", 0, {}, admin, admin)

        await db.commit()

    await engine.dispose()
    print("Seed complete.")
    for email, _, role, _ in DEMO_USERS:
        print(f"  {email} / {DEMO_PASSWORD} ({role})")


if __name__ == "__main__":
    asyncio.run(seed())
