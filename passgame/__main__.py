import sys

from passgame.cli import main

sys.exit(main())
