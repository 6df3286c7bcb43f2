#!/usr/bin/env python3
"""Print a summary of a Home Hub and the devices connected to it."""

import os
import sys

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from homehub_client import ClientConfig, HubError

# Load environment variables from .env file
load_dotenv()

def main():
    config = ClientConfig.from_env()

    if not config.password:
        print("Error: HUB_PASSWORD not set in environment or .env file")
        print("Create a .env file with:")
        print("  HUB_URL=http://192.168.1.254")
        print("  HUB_PASSWORD=your_password")
        return

    print(f"Connecting to hub at {config.target_url}...")
    hub = config.create_hub()

    try:
        hub.login()
    except HubError as e:
        print(f"Failed to login to hub: {e}")
        return

    try:
        status = hub.get_status()
        print("\nHub Status:")
        print("-" * 60)
        for name, value in status.items():
            print(f"{name:<20} {value}")

        print("\nConnected Devices:")
        print("-" * 60)
        devices = hub.connected_devices()

        if not devices:
            print("No devices connected")
        else:
            print(f"{'ID':<5} {'IP Address':<18} {'Physical Address':<20} {'Type':<10}")
            print("-" * 60)

            for device in devices:
                print(f"{device.id:<5} "
                      f"{device.ip_address or 'N/A':<18} "
                      f"{device.mac_address or 'N/A':<20} "
                      f"{device.interface_type or 'N/A':<10}")

    except HubError as e:
        print(f"Hub error: {e}")

    finally:
        try:
            hub.logout()
        except HubError as e:
            print(f"Logout failed: {e}")
        print("\nDisconnected from hub")

if __name__ == "__main__":
    main()
