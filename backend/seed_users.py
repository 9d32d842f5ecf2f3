# seed_users.py
from app.database import SessionLocal
from app import models
from app.routers.auth import get_password_hash

# Shop accounts created on a fresh install
USERS_TO_CREATE = [
    {"username": "admin", "name": "Shop Owner", "password": "admin123!", "role": "Admin"},
    {"username": "staff", "name": "Counter Staff", "password": "staff123!", "role": "Staff"},
]


def seed_users(db, users=USERS_TO_CREATE):
    """Create missing users; returns (created, skipped) usernames."""
    created, skipped = [], []

    for user in users:
        existing = db.query(models.User).filter(models.User.username == user["username"]).first()
        if existing:
            skipped.append(user["username"])
            continue

        db.add(
            models.User(
                username=user["username"],
                name=user["name"],
                password_hash=get_password_hash(user["password"]),
                role=user["role"],
            )
        )
        created.append(user["username"])

    db.commit()
    return created, skipped


def main():
    db = SessionLocal()
    try:
        created, skipped = seed_users(db)
    finally:
        db.close()

    for username in created:
        print(f"Created user: {username}")
    for username in skipped:
        print(f"Skipping (already exists): {username}")
    print(f"Created: {len(created)}, skipped: {len(skipped)}")


if __name__ == "__main__":
    main()
