#!/usr/bin/env python3
"""
Open the agent's persistent browser profile for manual setup.

Log in to the sites the agent should use, then press Enter; cookies and
local storage stay in the profile directory for later runs.

Usage:
    python scripts/prepare_profile.py https://example.org/login
"""
import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from webpilot.browser import PlaywrightBrowser
from webpilot.config import load_settings
from webpilot.errors import BrowserActionError


def main():
    parser = argparse.ArgumentParser(description="Prepare the persistent browser profile")
    parser.add_argument("url", nargs="?", default=None, help="Page to open first")
    parser.add_argument("--config", type=str, default="config.yaml", help="Path to config file")
    args = parser.parse_args()

    load_dotenv()
    settings = load_settings(args.config)
    # Manual setup always needs a visible window
    settings.browser.headless = False

    print(f"Profile: {settings.browser.user_data_dir}")

    with PlaywrightBrowser(settings.browser) as browser:
        if args.url:
            try:
                browser.navigate(args.url)
                browser.wait_idle()
            except BrowserActionError as e:
                print(f"Could not open {args.url}: {e}")
        input("Finish logging in, then press Enter to save the profile...")

    print("Profile saved.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
