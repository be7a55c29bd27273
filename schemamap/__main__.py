import sys

from schemamap.cli import main

sys.exit(main())
