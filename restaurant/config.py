from __future__ import annotations
import os
from datetime import time
from dotenv import load_dotenv

load_dotenv()

APP_NAME = os.getenv("APP_NAME", "Restaurant Orders & Reservations")
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./restaurant.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

ADMIN_BOOTSTRAP_USERNAME = os.getenv("ADMIN_BOOTSTRAP_USERNAME", "admin").lower()
ADMIN_BOOTSTRAP_PASSWORD = os.getenv("ADMIN_BOOTSTRAP_PASSWORD", "ChangeMe123!")

# Reservation hours, both ends inclusive ("HH:MM")
OPENING_TIME = time.fromisoformat(os.getenv("OPENING_TIME", "11:00"))
CLOSING_TIME = time.fromisoformat(os.getenv("CLOSING_TIME", "23:00"))

# How long a confirmed reservation blocks its table
OCCUPANCY_HOURS = float(os.getenv("OCCUPANCY_HOURS", "2"))
