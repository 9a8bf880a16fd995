import sys

from pynowplaying.cli import main

sys.exit(main())
