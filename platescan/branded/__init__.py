# -*- coding: utf-8 -*-
"""Branded — match a product name (and label text) to a branded product."""
