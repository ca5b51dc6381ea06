import sys

from risksurface.cli import main

sys.exit(main())
