import sys

from locale_sync.cli import main

sys.exit(main())
