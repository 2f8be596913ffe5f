"""
Run only the Slack bot (Socket Mode), without the web server.

    python -m tools.run_slack_bot
"""
from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv


def main() -> int:
    load_dotenv()

    from core.settings import get_settings
    from providers.factory import build_providers
    from slack_bot.app import SlackNotConfiguredError, create_slack_bot

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.server.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        bot = create_slack_bot(build_providers(settings))
    except SlackNotConfiguredError as exc:
        print(f"Slack bot not configured: {exc}")
        print("Set SLACK_BOT_TOKEN (xoxb-...), SLACK_SIGNING_SECRET and SLACK_APP_TOKEN (xapp-...) in .env")
        return 1

    try:
        bot.start()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        print(f"Failed to start Slack bot: {exc}")
        print("Check that Socket Mode is enabled for the app and the app token has connections:write.")
        return 1
    finally:
        bot.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
