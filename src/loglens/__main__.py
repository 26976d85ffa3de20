import sys

from loglens.cli.main import main

sys.exit(main())
