import sys

from reminders_batch.cli import main

sys.exit(main())
