import sys

from imagegen.api.cli import main

sys.exit(main())
