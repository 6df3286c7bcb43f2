#!/usr/bin/env python3
"""Switch the Home Hub light on or off and set its brightness."""

import argparse
import os
import sys

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from homehub_client import ClientConfig, HubError, SessionExpired

# Load environment variables from .env file
load_dotenv()

def main():
    parser = argparse.ArgumentParser(description="Control the Home Hub light")
    parser.add_argument("state", choices=["on", "off"], help="Turn the light on or off")
    parser.add_argument("--brightness", type=int, help="Brightness from 0 to 100")
    args = parser.parse_args()

    config = ClientConfig.from_env()
    hub = config.create_hub()

    try:
        hub.login()
        hub.set_light_enabled(args.state == "on")
        if args.brightness is not None:
            hub.set_light_brightness(args.brightness)
        print(f"Light is now {hub.light_status()} at {hub.light_brightness()}%")
    except SessionExpired:
        # Writes are not retried; run the script again
        print("Session expired before the change was confirmed")
    except (HubError, ValueError) as e:
        print(f"Error: {e}")
    finally:
        try:
            hub.logout()
        except HubError as e:
            print(f"Logout failed: {e}")

if __name__ == "__main__":
    main()
