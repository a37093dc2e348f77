import sys

from gentrail.cli import main

sys.exit(main())
