import sys

from desktop_oauth.cli import main

sys.exit(main())
