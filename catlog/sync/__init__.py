# -*- coding: utf-8 -*-
"""Cross-device sync of daily logs: whole-record last-writer-wins on ``last_modified``."""
