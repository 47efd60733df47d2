import sys

from helm_supervisor.cli import main

sys.exit(main())
