#!/usr/bin/env python3
"""
Create the admin account if it does not exist yet.

Credentials come from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME (see app/config.py).
Admins cannot sign up through the API; this script is the only way to get one.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from app.config import ADMIN_EMAIL, ADMIN_NAME, ADMIN_PASSWORD
from app.database import SessionLocal, init_db
from app.models import Role, User
from app.utils.security import hash_password
from app.utils.validation import validate_email


def seed_admin() -> bool:
    init_db()
    email = validate_email(ADMIN_EMAIL)

    db = SessionLocal()
    try:
        print("Checking for existing admin user...")
        if db.query(User).filter(User.email == email).first():
            print("✓ Admin user already exists, skipping creation.")
            return True

        db.add(User(
            name=ADMIN_NAME,
            email=email,
            password=hash_password(ADMIN_PASSWORD),
            role=Role.ADMIN.value,
        ))
        db.commit()
        print(f"✓ Admin user created: {email}")
        return True
    except Exception as e:
        db.rollback()
        print(f"✗ Error creating admin user: {e}")
        return False
    finally:
        db.close()


if __name__ == "__main__":
    success = seed_admin()
    sys.exit(0 if success else 1)
