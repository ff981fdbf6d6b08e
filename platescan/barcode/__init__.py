# -*- coding: utf-8 -*-
"""Barcode — store, OpenFoodFacts, then USDA product lookup."""
