import sys

from quantsim.cli import main

sys.exit(main())
