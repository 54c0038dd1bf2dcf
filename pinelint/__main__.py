"""Allow ``python -m pinelint``."""

from pinelint.main import main

raise SystemExit(main())
