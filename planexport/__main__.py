import sys

from planexport.cli import main

sys.exit(main())
