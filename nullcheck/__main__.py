"""Allow ``python -m nullcheck``."""

from nullcheck.main import main

raise SystemExit(main())
