"""
``python -m reelcast.cli`` runs the operator CLI exactly like the installed
``reelcast`` script, e.g. ``python -m reelcast.cli timeline show D1``.
"""

from .main import app

if __name__ == "__main__":
    app(prog_name="reelcast")
