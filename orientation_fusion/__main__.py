"""Allow ``python -m orientation_fusion``."""

import sys

from .main import main

sys.exit(main())
