"""Allow ``python -m yoblox_setup``."""

import sys

from yoblox_setup.cli import main

sys.exit(main())
