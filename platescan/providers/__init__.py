# -*- coding: utf-8 -*-
"""Providers — OpenFoodFacts and USDA FoodData Central clients."""
