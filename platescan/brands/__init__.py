# -*- coding: utf-8 -*-
"""Brands — static brand lexicon and Levenshtein fuzzy matching."""
