"""Allow ``python -m fmtargs``."""

from fmtargs.main import main

raise SystemExit(main())
