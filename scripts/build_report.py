"""Build the pavement condition HTML dashboard.

Usage:
    python scripts/build_report.py --output artifacts/pci_dashboard.html

Options:
    --year      Initially selected year (default: configured default year)
    --zoom      Initial map zoom (default: configured initial zoom)
    --run-id    Run identifier for the page header

Equivalent to ``pci-dashboard report``; requires the ``report`` extra.
"""
from __future__ import annotations

import sys

try:
    from pci_dashboard.cli import main
except ModuleNotFoundError as exc:
    if exc.name == "pci_dashboard":
        raise SystemExit(
            "Unable to import 'pci_dashboard'. Install the project first "
            "(for example: `python -m pip install -e .[report]`) and rerun this script."
        ) from exc
    raise


if __name__ == "__main__":
    raise SystemExit(main(["report", *sys.argv[1:]]))
