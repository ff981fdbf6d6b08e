# -*- coding: utf-8 -*-
"""Security — input validation, sanitization, rate limiting and the event log."""
