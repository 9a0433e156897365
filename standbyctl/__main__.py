import sys

from standbyctl.cli import main

sys.exit(main())
