"""``python -m conlink``"""

from conlink.cli.app import app

if __name__ == "__main__":
    app()
