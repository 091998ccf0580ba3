import sys

from budget_pal.main import main

sys.exit(main())
