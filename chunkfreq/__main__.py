import sys

from chunkfreq.cli import main

sys.exit(main())
