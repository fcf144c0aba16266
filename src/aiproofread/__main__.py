"""Allow ``python -m aiproofread``."""

from .app import main

raise SystemExit(main())
