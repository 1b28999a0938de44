import sys

from snippetbin.cli import main

sys.exit(main())
