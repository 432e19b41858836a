import sys

from mesh_schema.cli import main

sys.exit(main())
