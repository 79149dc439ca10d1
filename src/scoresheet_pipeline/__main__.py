import sys

from scoresheet_pipeline.cli import main

sys.exit(main())
