import sys

from tilecutter.cli import main

sys.exit(main())
