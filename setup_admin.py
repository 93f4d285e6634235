#!/usr/bin/env python3
"""
Quick setup script to create the first admin user
Usage: python setup_admin.py
"""

import sys
import os

# Add the backend directory to the Python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from decouple import config
from database.connection import get_db, create_tables
from services.auth import create_user, get_user_by_email
from services.delivery_repository import DeliveryRepository
from services.notification_emitter import NotificationEmitter
from models.user import UserRole

def setup_default_admin():
    """Create a default admin user"""
    print("Setting up default admin user...")

    admin_email = config("ADMIN_EMAIL", default="admin@cargomate.in")
    admin_password = config("ADMIN_PASSWORD", default="Admin123!")
    admin_name = config("ADMIN_NAME", default="System Administrator")

    db = next(get_db())

    try:
        create_tables()

        existing_user = get_user_by_email(db, admin_email)
        if existing_user:
            print(f"User already exists: {admin_email} (role: {existing_user.role.value})")
            return existing_user

        print(f"Creating admin user: {admin_email}")
        user = create_user(
            db=db,
            email=admin_email,
            password=admin_password,
            name=admin_name,
            role=UserRole.ADMIN
        )

        NotificationEmitter(DeliveryRepository(db)).notify_registration(user)

        print("Admin user created successfully!")
        print(f"  Email: {user.email}")
        print(f"  ID: {user.id}")
        return user

    except Exception as e:
        print(f"Error creating admin user: {str(e)}")
        db.rollback()
        return None
    finally:
        db.close()

if __name__ == "__main__":
    setup_default_admin()
