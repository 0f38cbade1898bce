import sys

from microapp.cli import main

sys.exit(main())
