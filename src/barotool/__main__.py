from __future__ import annotations

from barotool.cli import main

raise SystemExit(main())
