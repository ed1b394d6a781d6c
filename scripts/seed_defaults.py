"""Seed the settings row, stock SMS templates and a first super user."""

import os

from dotenv import load_dotenv

load_dotenv()

from sqlalchemy import select  # noqa: E402

from app.core.database import SessionLocal  # noqa: E402
from app.core.security import hash_password  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.settings import SettingsService  # noqa: E402
from app.services.sms import SmsService  # noqa: E402

admin_username = os.environ.get("SEED_ADMIN_USERNAME", "admin")
admin_password = os.environ.get("SEED_ADMIN_PASSWORD")
initial_balance = int(os.environ.get("SEED_SMS_BALANCE", "0"))

db = SessionLocal()
try:
    admin = db.execute(select(User).where(User.username == admin_username)).scalar_one_or_none()
    if admin is None:
        if not admin_password:
            raise SystemExit("SEED_ADMIN_PASSWORD is required to create the super user")
        admin = User(
            username=admin_username,
            password_hash=hash_password(admin_password),
            first_name="Admin",
            role=UserRole.SUPER_USER,
        )
        db.add(admin)
        db.flush()
        print(f"Created super user {admin_username}")

    settings_service = SettingsService(db)
    if settings_service.get_settings() is None:
        settings_service.set_sms_count(initial_balance, updated_by=admin.id)
        print(f"Created settings row with SMS balance {initial_balance}")

    created = SmsService(db).seed_default_templates(created_by=admin.id)
    print(f"Seeded {len(created)} SMS templates")

    db.commit()
except Exception:
    db.rollback()
    raise
finally:
    db.close()

print("Done!")
