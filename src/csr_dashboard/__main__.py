"""Allow ``python -m csr_dashboard``."""

from csr_dashboard.cli import app

if __name__ == "__main__":
    app()
