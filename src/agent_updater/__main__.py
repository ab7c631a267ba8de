"""Entry point for ``python -m agent_updater``."""

from agent_updater.cli import run

if __name__ == "__main__":
    run()
