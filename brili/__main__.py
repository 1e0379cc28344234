"""
brili/__main__.py
=================

Entry point for ``python -m brili``; see :mod:`brili.main` for options.
"""

from brili.main import main

raise SystemExit(main())
