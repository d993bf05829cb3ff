"""
Pytest configuration file for the unicode input tests.
"""

import os
import sys
from pathlib import Path

# The Main/ and Details/ packages live at the repository root
root_path = Path(__file__).parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

# Qt widgets are created without a display in the tests
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
