import sys

from metricrelay.cli import main

sys.exit(main())
