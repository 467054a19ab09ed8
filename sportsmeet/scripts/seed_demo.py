"""
Create demo users (one host, one participant) and print bearer tokens.

Usage:
    python -m sportsmeet.scripts.seed_demo
"""

from sqlalchemy import select

from sportsmeet.core.security import create_access_token
from sportsmeet.database.db import SessionLocal, init_db
from sportsmeet.models.users import Role, User

DEMO_USERS = [
    {"name": "Demo Host", "email": "host@example.com", "role": Role.HOST},
    {"name": "Demo Player", "email": "player@example.com", "role": Role.PARTICIPANT},
]


def seed() -> list[User]:
    init_db()
    users = []
    with SessionLocal() as db:
        for demo in DEMO_USERS:
            user = db.scalar(select(User).where(User.email == demo["email"]))
            if user is None:
                user = User(name=demo["name"], email=demo["email"], role=demo["role"].value)
                db.add(user)
                db.commit()
                db.refresh(user)
            users.append(user)
    return users


def main() -> None:
    for user in seed():
        print(f"{user.role:<12} {user.email:<22} {create_access_token(user.id)}")


if __name__ == "__main__":
    main()
