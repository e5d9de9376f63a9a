#!/usr/bin/env python3
"""
Generate a VAPID key pair for Web Push.
Usage: python scripts/generate_vapid_keys.py >> .env
"""
import sys
import os

# Add the backend directory to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mcm_alerts.services.push_service import generate_vapid_keys


if __name__ == "__main__":
    keys = generate_vapid_keys()
    print(f"VAPID_PUBLIC_KEY={keys['public_key']}")
    print(f"VAPID_PRIVATE_KEY={keys['private_key']}")
