"""Entry point for running bot as module."""

from content_bot.bot.main import run

if __name__ == "__main__":
    run()
