# -*- coding: utf-8 -*-
"""Nutrition Vault — locally resolved nutrition items with prefix search."""
