import logging
import sys
from pathlib import Path

import pytest

# Make `import grid_slides` work without installing the package
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def quiet_third_party_logging():
    """Keep Pillow and pyppeteer debug output out of failure reports."""
    for name in ("PIL", "pyppeteer"):
        logging.getLogger(name).setLevel(logging.WARNING)
    yield
