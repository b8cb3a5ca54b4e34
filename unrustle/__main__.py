import sys

from unrustle.main import main

sys.exit(main())
