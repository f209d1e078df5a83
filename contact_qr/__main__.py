import sys

from contact_qr.cli import main

sys.exit(main())
