import sys

from .cp import main

sys.exit(main())
