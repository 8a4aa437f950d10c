import sys

from hybrid_ai.cli import main

sys.exit(main())
