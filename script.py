# script.py
import sys
from getpass import getpass
from sqlalchemy.orm import Session
from tasktrack.db import Base, engine, get_db
from tasktrack import models  # noqa: F401  registers every table on Base.metadata
from tasktrack.models.user import User, UserRole
from tasktrack.core.security import hash_password

def create_tables():
    print("📦 Creating database tables...")
    Base.metadata.create_all(bind=engine)
    print("✅ Tables created successfully.")

def create_superuser():
    db: Session = next(get_db())

    # Check if a super admin already exists
    existing = db.query(User).filter(User.role == UserRole.super_admin).first()
    if existing:
        print(f"⚠️  Super admin already exists: {existing.email}")
        return

    print("🛠 Creating super admin account...")
    username = input("Enter username: ").strip()
    email = input("Enter email: ").strip().lower()
    full_name = input("Enter full name: ").strip()
    password = getpass("Enter password: ")

    if not username or not email or not password:
        print("❌ Username, email, and password are required.")
        sys.exit(1)

    superuser = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name or None,
        role=UserRole.super_admin,
        is_active=True
    )

    db.add(superuser)
    db.commit()
    print("✅ Super admin created successfully.")

if __name__ == "__main__":
    create_tables()
    create_superuser()
