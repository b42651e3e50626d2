"""Save the phone's current UI tree for offline inspection.

Usage:
    .venv/bin/python scripts/capture_ui_dump.py [serial]

Open the screen you want to capture (e.g. the Booking Planner), then press
Enter in the terminal. The uiautomator XML is saved to dumps/<timestamp>.xml
and can be replayed with: python main.py inspect --dump <file>
"""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

from offerbot.device.adb import AdbClient

OUTPUT_DIR = Path("dumps")


async def capture(serial: str) -> Path:
    client = AdbClient(serial=serial)
    xml = await client.dump_ui()
    OUTPUT_DIR.mkdir(exist_ok=True)
    path = OUTPUT_DIR / f"{datetime.now():%Y%m%d-%H%M%S}.xml"
    path.write_text(xml, encoding="utf-8")
    return path


def main() -> None:
    serial = sys.argv[1] if len(sys.argv) > 1 else ""
    input("\n>>> Open the screen to capture, then press Enter here...")
    path = asyncio.run(capture(serial))
    print(f"Saved UI dump to {path}")


if __name__ == "__main__":
    main()
