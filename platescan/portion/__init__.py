# -*- coding: utf-8 -*-
"""Portion — serving-size parsing, safe portion detection and plate-area estimates."""
