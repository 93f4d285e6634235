#!/usr/bin/env python3
"""
Create the CargoMate tables
Usage: python create_tables.py [--reset]

--reset drops every table first and is refused in production.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.config import settings
from database.base import Base
from database.connection import engine, create_tables

def reset_tables():
    from models import user, vendor, delivery, tracking, notification, payment  # noqa: F401
    Base.metadata.drop_all(bind=engine)

def main(argv):
    try:
        if "--reset" in argv:
            if settings.ENVIRONMENT == "production":
                print("Refusing to drop tables in production")
                return 1
            print("Dropping existing tables...")
            reset_tables()

        create_tables()
        print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
        return 0
    except Exception as e:
        print(f"Failed to create tables: {e}")
        return 1

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
