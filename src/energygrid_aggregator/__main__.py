import sys

from energygrid_aggregator.cli import main

sys.exit(main())
