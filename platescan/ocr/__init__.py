# -*- coding: utf-8 -*-
"""OCR — label text tokenization and the Google Vision client."""
