"""Trigger the booking-hold sweep on a running server.

Meant for an external scheduler (cron, a platform job runner):
python scripts/expire_bookings.py
"""
import os
import sys

import requests
from dotenv import load_dotenv

load_dotenv()

BASE = os.getenv("APP_URL", "http://127.0.0.1:8000").rstrip("/")
CRON_SECRET = os.getenv("CRON_SECRET", "")


def main() -> int:
    if not CRON_SECRET:
        print("CRON_SECRET is not set; refusing to call the sweep endpoint.")
        return 1
    r = requests.post(f"{BASE}/api/system/expire-bookings", headers={"x-cron-key": CRON_SECRET}, timeout=30)
    print("Status:", r.status_code, "Body:", r.text)
    return 0 if r.ok else 1


if __name__ == "__main__":
    sys.exit(main())
