import asyncio
import os
import sys

from dotenv import load_dotenv

from module_processor import main_loop
from sonic_cycler.exceptions import ConfigurationError
from sonic_cycler.utils import ConfigLoader


def main() -> int:
    load_dotenv()

    loader = ConfigLoader()
    try:
        config = loader.load()
    except ConfigurationError as e:
        print(f"\n❌ Configuration error: {e}")
        return 1

    for warning in loader.warnings:
        print(f"⚠️ {warning}")

    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    try:
        asyncio.run(main_loop(config))
    except KeyboardInterrupt:
        print("\n\n🚨 The program has been stopped. The terminal is ready for commands.")
    except ConfigurationError as e:
        print(f"\n\n❌ Configuration error: {e}")
        return 1
    finally:
        if sys.platform != "win32" and sys.stdin.isatty():
            os.system("stty sane")

    print("👋 The program has ended. The terminal is ready for commands.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
