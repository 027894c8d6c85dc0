import sys

from retain_cycles.main import main

sys.exit(main())
